"""
Pydantic schemas for records that cross the engine boundary.
"""

import math
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def normalize_token_count(value: Any) -> Optional[int]:
    """
    Normalize a raw token count into a non-negative integer.

    Returns None when the value is missing, non-numeric, NaN, infinite
    or negative.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None

    normalized = math.floor(value)
    return normalized if normalized >= 0 else None


class TokenUsage(BaseModel):
    """Token usage reported by a provider response."""

    model_config = ConfigDict(frozen=True)

    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    @field_validator("input_tokens", "output_tokens", "total_tokens", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> Optional[int]:
        return normalize_token_count(value)


class CompactionNoOpReason(str, Enum):
    NO_ITEMS = "no_items"
    NO_CANDIDATES = "no_candidates"
    HIGH_FAILURE_RATE = "high_failure_rate"
    NO_REDUCTION = "no_reduction"


class CompactionResult(BaseModel):
    """Outcome of one compaction pass."""

    content: str
    was_compacted: bool
    original_char_count: int = Field(..., ge=0)
    compacted_char_count: int = Field(..., ge=0)
    items_processed: int = Field(default=0, ge=0)
    items_summarized: int = Field(default=0, ge=0)
    target_char_count: Optional[int] = Field(default=None, ge=0)
    target_met: Optional[bool] = None
    no_op_reason: Optional[CompactionNoOpReason] = None

    @model_validator(mode="after")
    def _check_invariants(self) -> "CompactionResult":
        if self.items_summarized > self.items_processed:
            raise ValueError("items_summarized cannot exceed items_processed")
        if self.was_compacted == (self.no_op_reason is not None):
            raise ValueError("no_op_reason must be set exactly when nothing was compacted")
        if self.was_compacted and self.compacted_char_count >= self.original_char_count:
            raise ValueError("a compacted result must be shorter than the original")
        return self

    @property
    def reduction_ratio(self) -> float:
        """Fraction of characters removed (0.0 for no-ops)."""
        if self.original_char_count == 0:
            return 0.0
        return 1 - self.compacted_char_count / self.original_char_count
