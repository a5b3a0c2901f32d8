"""Per-model token pricing for cost reporting.

Prices are USD per one million tokens. Models with an "off_peak" entry are
discounted during the provider's off-peak window (16:30-00:30 UTC).
"""

from __future__ import annotations

from datetime import UTC, datetime, time
from typing import Optional

PRICING: dict[str, dict[str, dict[str, float]]] = {
    "deepseek-chat": {
        "input": {"standard": 0.27, "off_peak": 0.135},
        "output": {"standard": 1.10, "off_peak": 0.55},
    },
    "deepseek-reasoner": {
        "input": {"standard": 0.55, "off_peak": 0.135},
        "output": {"standard": 2.19, "off_peak": 0.55},
    },
    "gpt-4o-mini": {
        "input": {"standard": 0.15},
        "output": {"standard": 0.60},
    },
    "gpt-3.5-turbo": {
        "input": {"standard": 0.50},
        "output": {"standard": 1.50},
    },
    "gpt-4": {
        "input": {"standard": 30.00},
        "output": {"standard": 60.00},
    },
}

OFF_PEAK_START = time(16, 30)
OFF_PEAK_END = time(0, 30)


def is_off_peak(now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(UTC)
    if now.tzinfo is not None:
        now = now.astimezone(UTC)
    current = now.time()
    return current >= OFF_PEAK_START or current < OFF_PEAK_END


def calculate_cost(
    model: str,
    input_tokens: int,
    output_tokens: int,
    now: Optional[datetime] = None,
) -> float:
    """Estimate the USD cost of one call. Unknown models cost nothing."""
    pricing = PRICING.get(model)
    if pricing is None:
        return 0.0
    tier = "off_peak" if is_off_peak(now) else "standard"

    def rate(direction: str) -> float:
        rates = pricing[direction]
        return rates.get(tier, rates["standard"])

    return (input_tokens / 1_000_000) * rate("input") + (output_tokens / 1_000_000) * rate("output")
