"""Per-backend token pricing."""

from enhance_stream.core.config.constants import BACKEND_PRICING, DEFAULT_PRICING_BACKEND


def calculate_cost(backend_name: str, input_tokens: int, output_tokens: int) -> float:
    """
    Cost in USD of a generation.

    Prices are per 1K tokens; backends missing from the table are billed at
    the OpenAI rate.
    """
    input_rate, output_rate = BACKEND_PRICING.get(
        backend_name, BACKEND_PRICING[DEFAULT_PRICING_BACKEND]
    )
    return (input_tokens * input_rate + output_tokens * output_rate) / 1000
