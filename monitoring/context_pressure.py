"""
Context pressure tracking.

Compares the prompt tokens reported by a provider response against the
active model's context window.
"""

from dataclasses import dataclass
from typing import Mapping, Optional, Union

from context.context_budgeting import count_tokens
from shared.schemas import TokenUsage, normalize_token_count

# Pressure levels by ratio of window used
ELEVATED_RATIO = 0.6
CRITICAL_RATIO = 0.85


@dataclass
class ContextPressure:
    """Context pressure for the latest response."""

    token_count: Optional[int]
    max_context_tokens: int
    ratio: float
    percent: Optional[int]
    level: str  # unavailable, ok, elevated, critical

    @property
    def has_usage(self) -> bool:
        return self.token_count is not None


def resolve_prompt_token_count(
    usage: Union[TokenUsage, Mapping, None],
    prompt_text: Optional[str] = None,
) -> Optional[int]:
    """
    Resolve the prompt token count from provider usage.

    Prefers input tokens and falls back to total tokens. When the provider
    reported neither and the prompt text is known, the prompt is counted
    with the tokenizer.

    Args:
        usage: TokenUsage, raw usage mapping, or None
        prompt_text: Prompt sent with the request, for local estimation

    Returns:
        Prompt token count, or None when unavailable
    """
    reported = _reported_prompt_tokens(usage)
    if reported is None and prompt_text is not None:
        return count_tokens(prompt_text)
    return reported


def _reported_prompt_tokens(usage: Union[TokenUsage, Mapping, None]) -> Optional[int]:
    if usage is None:
        return None
    if not isinstance(usage, TokenUsage):
        usage = TokenUsage(
            input_tokens=usage.get("input_tokens"),
            output_tokens=usage.get("output_tokens"),
            total_tokens=usage.get("total_tokens"),
        )

    if usage.input_tokens is not None:
        return usage.input_tokens
    return usage.total_tokens


def compute_context_pressure(
    token_count: Optional[int],
    max_context_tokens: Optional[int],
) -> Optional[ContextPressure]:
    """
    Compute context pressure against the model window.

    Returns:
        ContextPressure, or None when the window is unknown
    """
    window = normalize_token_count(max_context_tokens)
    if not window:
        return None

    count = normalize_token_count(token_count)
    if count is None:
        return ContextPressure(
            token_count=None,
            max_context_tokens=window,
            ratio=0.0,
            percent=None,
            level="unavailable",
        )

    ratio = min(count / window, 1.0)
    if ratio >= CRITICAL_RATIO:
        level = "critical"
    elif ratio >= ELEVATED_RATIO:
        level = "elevated"
    else:
        level = "ok"

    return ContextPressure(
        token_count=count,
        max_context_tokens=window,
        ratio=ratio,
        percent=int(ratio * 100 + 0.5),
        level=level,
    )
