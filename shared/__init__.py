"""
Shared configuration and record schemas.

Usage:
    from shared import get_settings, CompactionResult

    settings = get_settings()
    threshold = settings.budget.configured_threshold_tokens
"""

from .config import (
    BudgetSettings,
    CompactionSettings,
    RelevantNotesSettings,
    Settings,
    get_settings,
)
from .schemas import (
    CompactionNoOpReason,
    CompactionResult,
    TokenUsage,
    normalize_token_count,
)

__all__ = [
    "Settings",
    "BudgetSettings",
    "CompactionSettings",
    "RelevantNotesSettings",
    "get_settings",
    "TokenUsage",
    "CompactionNoOpReason",
    "CompactionResult",
    "normalize_token_count",
]
