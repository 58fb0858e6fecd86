from enhance_stream.llm_stream.services.enhancement_orchestrator import (
    CancelResult,
    EnhancementOrchestrator,
    SessionCreated,
)
from enhance_stream.llm_stream.services.pricing import calculate_cost
from enhance_stream.llm_stream.services.prompting import (
    ActionPromptBuilder,
    AssembledContext,
    ContextAssembler,
    FieldContextAssembler,
    Prompt,
    PromptBuilder,
    PromptOverrides,
)

__all__ = [
    "ActionPromptBuilder",
    "AssembledContext",
    "CancelResult",
    "ContextAssembler",
    "EnhancementOrchestrator",
    "FieldContextAssembler",
    "Prompt",
    "PromptBuilder",
    "PromptOverrides",
    "SessionCreated",
    "calculate_cost",
]
