"""
Context token budget management.

Treat injected context as a resource with a budget.

Considerations:
- Model context window limits (vary per model, change mid-session)
- User-configured compaction threshold
- Hard character ceiling protecting memory and latency
"""

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Union

import tiktoken

from shared.config import Settings

logger = logging.getLogger(__name__)

# Approximate character-to-token ratio used for heuristic budgeting
APPROX_CHARS_PER_TOKEN = 4

# Portion of the model context window allowed before compaction is forced.
# The remainder is headroom for the response and protocol overhead.
MODEL_AWARE_RATIO = 0.65

DEFAULT_MINIMUM_BUDGET_TOKENS = 2000

Tokens = Union[int, float]


@dataclass(frozen=True)
class BudgetConfig:
    """Per-request budget snapshot."""

    enable_auto_compaction: bool
    configured_threshold_tokens: int
    context_window_tokens: int
    context_window_ratio: float = 0.12
    hard_max_chars: int = 448000
    minimum_budget_tokens: int = DEFAULT_MINIMUM_BUDGET_TOKENS
    model_aware_ratio: float = MODEL_AWARE_RATIO
    chars_per_token: int = APPROX_CHARS_PER_TOKEN

    @classmethod
    def from_settings(cls, settings: Settings, context_window_tokens: int) -> "BudgetConfig":
        """Snapshot the current settings for the active model's window."""
        budget = settings.budget
        return cls(
            enable_auto_compaction=budget.enable_auto_compaction,
            configured_threshold_tokens=budget.configured_threshold_tokens,
            context_window_tokens=context_window_tokens,
            context_window_ratio=budget.local_search_context_ratio,
            hard_max_chars=budget.local_search_hard_max_chars,
            minimum_budget_tokens=budget.minimum_budget_tokens,
            model_aware_ratio=budget.model_aware_ratio,
            chars_per_token=budget.chars_per_token,
        )

    @property
    def compaction_threshold_tokens(self) -> Tokens:
        """Effective compaction threshold, recomputed on every access."""
        return resolve_compaction_threshold_tokens(self)

    @property
    def local_search_context_char_budget(self) -> int:
        """Local-search payload budget in characters."""
        return resolve_local_search_context_char_budget(
            context_window_tokens=self.context_window_tokens,
            compaction_threshold_tokens=self.compaction_threshold_tokens,
            context_window_ratio=self.context_window_ratio,
            hard_max_chars=self.hard_max_chars,
            minimum_budget_tokens=self.minimum_budget_tokens,
            chars_per_token=self.chars_per_token,
        )


def resolve_compaction_threshold_tokens(
    config: BudgetConfig,
    model_aware_ratio: Optional[float] = None,
) -> Tokens:
    """
    Resolve a model-aware compaction threshold.

    The configured threshold is silently tightened to a fraction of the
    active model's context window, so compaction fires before requests
    approach hard context limits.

    Args:
        config: Budget snapshot for this request
        model_aware_ratio: Portion of the window usable before compaction
            (defaults to config.model_aware_ratio)

    Returns:
        Threshold in tokens, or math.inf when auto-compaction is disabled
    """
    if not config.enable_auto_compaction:
        return math.inf

    if model_aware_ratio is None:
        model_aware_ratio = config.model_aware_ratio
    model_aware_cap = math.floor(config.context_window_tokens * model_aware_ratio)
    return min(config.configured_threshold_tokens, model_aware_cap)


def resolve_local_search_context_char_budget(
    context_window_tokens: int,
    compaction_threshold_tokens: Tokens,
    context_window_ratio: float,
    hard_max_chars: int,
    minimum_budget_tokens: int = DEFAULT_MINIMUM_BUDGET_TOKENS,
    chars_per_token: int = APPROX_CHARS_PER_TOKEN,
    compaction_threshold_share: Optional[float] = None,
) -> int:
    """
    Resolve the character budget for local-search payloads.

    The budget is:
    1. A fraction of the model context window, never below the minimum.
    2. Optionally capped at a share of the compaction threshold.
    3. Converted to characters and clamped to a hard maximum.

    Args:
        context_window_tokens: Active model context window
        compaction_threshold_tokens: Effective threshold (math.inf when disabled)
        context_window_ratio: Fraction of the window for local search
        hard_max_chars: Absolute ceiling in characters
        minimum_budget_tokens: Floor for tiny-window models
        chars_per_token: Token-to-character conversion heuristic
        compaction_threshold_share: Share of the threshold retrieval may use

    Returns:
        Allowed payload size in characters
    """
    ratio_budget_tokens = math.floor(context_window_tokens * context_window_ratio)
    budget_tokens = max(minimum_budget_tokens, ratio_budget_tokens)

    if compaction_threshold_share is not None and math.isfinite(compaction_threshold_tokens):
        threshold_budget = max(
            minimum_budget_tokens,
            math.floor(compaction_threshold_tokens * compaction_threshold_share),
        )
        budget_tokens = min(budget_tokens, threshold_budget)

    return min(hard_max_chars, budget_tokens * chars_per_token)


def tokens_to_chars(tokens: int, chars_per_token: int = APPROX_CHARS_PER_TOKEN) -> int:
    """Convert a token budget to an approximate character budget."""
    return tokens * chars_per_token


def chars_to_tokens(chars: int, chars_per_token: int = APPROX_CHARS_PER_TOKEN) -> int:
    """Estimate tokens for a character count (rounded up)."""
    return -(-chars // chars_per_token)


@lru_cache(maxsize=1)
def _get_encoding():
    return tiktoken.get_encoding("cl100k_base")


def count_tokens(text: str) -> int:
    """Count tokens in text with the cl100k_base tokenizer."""
    return len(_get_encoding().encode(text))
