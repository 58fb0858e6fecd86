"""
Context assembly and prompt construction.

The orchestrator talks to both through narrow protocols so deployments can
plug in their own domain lookups and prompt wording:

    ContextAssembler.assemble(raw_context, include_context, requester_id) -> AssembledContext
    PromptBuilder.build(action, context, overrides) -> Prompt

The default implementations below only use what the client sent with the
request; they never fetch data from other services.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from enhance_stream.core.config.constants import ContextSection, EnhanceAction, Stage
from enhance_stream.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AssembledContext:
    """Context handed to the prompt builder."""

    primary_text: str
    metadata: dict[str, Any] = field(default_factory=dict)
    related_data: dict[str, Any] = field(default_factory=dict)
    formatted_context: str = ""


@dataclass
class Prompt:
    system_prompt: str
    user_prompt: str


@dataclass
class PromptOverrides:
    custom_prompt: str | None = None
    tone: str | None = None


class ContextAssembler(Protocol):
    async def assemble(
        self,
        raw_context: dict[str, Any],
        include_context: Sequence[ContextSection],
        requester_id: str,
    ) -> AssembledContext: ...


class PromptBuilder(Protocol):
    def build(
        self,
        action: EnhanceAction,
        context: AssembledContext,
        overrides: PromptOverrides | None = None,
    ) -> Prompt: ...


# =============================================================================
# Default context assembler
# =============================================================================


class FieldContextAssembler:
    """
    Builds prompt context from the field context a client sent.

    ``raw_context`` keys: ``text``, ``field_type``, ``field_id``,
    ``entity_id`` and a free-form ``metadata`` dict. Sections are only
    included when requested; a failure while assembling falls back to the
    bare primary text.
    """

    async def assemble(
        self,
        raw_context: dict[str, Any],
        include_context: Sequence[ContextSection],
        requester_id: str,
    ) -> AssembledContext:
        metadata = dict(raw_context.get("metadata") or {})
        assembled = AssembledContext(
            primary_text=raw_context.get("text", ""),
            metadata={
                "field_type": raw_context.get("field_type"),
                "field_id": raw_context.get("field_id"),
                "entity_id": raw_context.get("entity_id"),
                **metadata,
            },
        )

        try:
            sections = {ContextSection(section) for section in include_context}
            self._collect_related(assembled, sections, metadata, raw_context.get("entity_id"))
            assembled.formatted_context = self._format(assembled.related_data)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(
                "Context assembly failed, using basic context",
                stage=Stage.PROMPT_ASSEMBLY,
                requester_id=requester_id,
                error=str(e),
            )
            assembled.related_data = {}
            assembled.formatted_context = ""

        return assembled

    @staticmethod
    def _collect_related(
        assembled: AssembledContext,
        sections: set[ContextSection],
        metadata: dict[str, Any],
        entity_id: str | None,
    ) -> None:
        related = assembled.related_data

        if ContextSection.OPPORTUNITY_DETAILS in sections:
            opportunity = metadata.get("opportunity")
            if opportunity:
                related["opportunity"] = {"id": entity_id, **opportunity}
            project = metadata.get("project")
            if project:
                related["project"] = project

        if ContextSection.CURRENT_TAB in sections:
            current_tab = metadata.get("current_tab") or metadata.get("currentTab")
            if current_tab:
                related["current_tab"] = current_tab

        if ContextSection.RELATED_FIELDS in sections:
            related["related_fields"] = list(
                metadata.get("related_fields") or metadata.get("relatedFields") or []
            )

    @staticmethod
    def _format(related: dict[str, Any]) -> str:
        parts = []

        opportunity = related.get("opportunity")
        if opportunity:
            parts.append(f"Opportunity: {opportunity.get('name') or 'N/A'}")
            if opportunity.get("stage"):
                parts.append(f"Stage: {opportunity['stage']}")

        project = related.get("project")
        if project:
            parts.append(f"Project: {project.get('name') or 'N/A'}")

        if related.get("current_tab"):
            parts.append(f"Current Tab: {related['current_tab']}")

        for item in related.get("related_fields", []):
            if isinstance(item, dict) and item.get("name"):
                parts.append(f"{item['name']}: {item.get('value', '')}")

        return "\n".join(parts)


# =============================================================================
# Default prompt builder
# =============================================================================

BASE_SYSTEM_PROMPT = (
    "You are a helpful AI assistant that enhances text content.\n"
    "Your goal is to improve text while maintaining its original meaning and intent.\n"
    "Return only the enhanced text, without explanations or meta-commentary."
)

ACTION_INSTRUCTIONS: dict[EnhanceAction, str] = {
    EnhanceAction.IMPROVE: "Enhance clarity, readability, and professionalism.",
    EnhanceAction.MAKE_SHORTER: "Condense the text while keeping all key points.",
    EnhanceAction.SUMMARIZE: "Create a concise summary highlighting main points.",
    EnhanceAction.FIX_GRAMMAR: "Correct grammar, spelling, and punctuation only. Don't change meaning.",
    EnhanceAction.CHANGE_TONE: "Adjust tone as requested while keeping content intact.",
    EnhanceAction.EXPAND: "Expand on key points with relevant details.",
}

ACTION_TASKS: dict[EnhanceAction, str] = {
    EnhanceAction.IMPROVE: "Enhance and improve this text",
    EnhanceAction.MAKE_SHORTER: "Make this text shorter while keeping key points",
    EnhanceAction.SUMMARIZE: "Summarize this text",
    EnhanceAction.FIX_GRAMMAR: "Fix grammar and spelling errors",
    EnhanceAction.CHANGE_TONE: "Change the tone",
    EnhanceAction.EXPAND: "Expand on the key points",
    EnhanceAction.FREE_PROMPT: "Enhance according to custom instructions",
}


class ActionPromptBuilder:
    """Builds system and user prompts from the requested action."""

    def build(
        self,
        action: EnhanceAction,
        context: AssembledContext,
        overrides: PromptOverrides | None = None,
    ) -> Prompt:
        overrides = overrides or PromptOverrides()
        return Prompt(
            system_prompt=self.system_prompt(action),
            user_prompt=self.user_prompt(action, context, overrides),
        )

    @staticmethod
    def system_prompt(action: EnhanceAction) -> str:
        instruction = ACTION_INSTRUCTIONS.get(action)
        return f"{BASE_SYSTEM_PROMPT} {instruction}" if instruction else BASE_SYSTEM_PROMPT

    @staticmethod
    def user_prompt(
        action: EnhanceAction, context: AssembledContext, overrides: PromptOverrides
    ) -> str:
        prompt = ""
        if context.formatted_context:
            prompt += f"Context:\n{context.formatted_context}\n\n"

        prompt += f"Original Text:\n{context.primary_text}\n\n"

        if action is EnhanceAction.FREE_PROMPT and overrides.custom_prompt:
            prompt += (
                f"Task: {overrides.custom_prompt}\n\n"
                "Please enhance the text according to the task above."
            )
        elif action is EnhanceAction.CHANGE_TONE and overrides.tone:
            prompt += f"Task: Change the tone to: {overrides.tone}\n\nPlease modify the text accordingly."
        else:
            task = ACTION_TASKS.get(action, "Enhance this text")
            prompt += f"Task: {task}\n\nPlease perform the requested action on the text above."

        return prompt
