"""
Configuration module for the context engine.
Manages budget, compaction and similarity-sampling settings with
environment variable overrides.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Tuple


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass
class BudgetSettings:
    """Heuristics used to turn a model context window into budgets."""

    enable_auto_compaction: bool = field(
        default_factory=lambda: os.getenv("ENABLE_AUTO_COMPACTION", "true").lower() == "true"
    )
    configured_threshold_tokens: int = field(
        default_factory=lambda: _env_int("AUTO_COMPACT_THRESHOLD_TOKENS", 128000)
    )
    chars_per_token: int = field(default_factory=lambda: _env_int("CHARS_PER_TOKEN", 4))
    # Share of the context window allowed before compaction is forced
    model_aware_ratio: float = field(
        default_factory=lambda: _env_float("MODEL_AWARE_RATIO", 0.65)
    )
    local_search_context_ratio: float = field(
        default_factory=lambda: _env_float("LOCAL_SEARCH_CONTEXT_RATIO", 0.12)
    )
    local_search_hard_max_chars: int = field(
        default_factory=lambda: _env_int("LOCAL_SEARCH_HARD_MAX_CHARS", 448000)
    )
    minimum_budget_tokens: int = field(
        default_factory=lambda: _env_int("MINIMUM_BUDGET_TOKENS", 2000)
    )


# (base_min_item_chars, min_item_floor_chars) per compaction mode
COMPACTION_MODE_PROFILES: Dict[str, Tuple[int, int]] = {
    "conservative": (80000, 12000),
    "balanced": (50000, 4000),
    "aggressive": (32000, 2000),
}


@dataclass
class CompactionSettings:
    """Compaction planner configuration."""

    mode: str = field(default_factory=lambda: os.getenv("CONTEXT_COMPACTION_MODE", "balanced"))
    failure_tolerance: float = 0.5
    failure_check_interval: int = 3
    max_retries: int = 1
    max_item_chars: int = 500000
    min_pressure_scale: float = 0.08
    summary_marker: str = "[SUMMARIZED]"
    truncation_marker: str = "[TRUNCATED]"
    timeout_seconds: float = field(
        default_factory=lambda: _env_float("COMPACTION_TIMEOUT_SECONDS", 0.0)
    )
    temperature: float = field(default_factory=lambda: _env_float("COMPACTION_TEMPERATURE", 0.1))

    def get_mode_profile(self) -> Tuple[int, int]:
        """Resolve (base, floor) item sizes; unknown modes fall back to balanced."""
        return COMPACTION_MODE_PROFILES.get(self.mode, COMPACTION_MODE_PROFILES["balanced"])


@dataclass
class RelevantNotesSettings:
    """Similarity sampling for relevant-note search."""

    max_similarity_queries: int = field(
        default_factory=lambda: _env_int("MAX_SIMILARITY_EMBEDDING_QUERIES", 24)
    )
    max_k: int = field(default_factory=lambda: _env_int("RELEVANT_NOTES_MAX_K", 30))


@dataclass
class Settings:
    """Main settings loaded from environment."""

    # Nested configs
    budget: BudgetSettings = field(default_factory=BudgetSettings)
    compaction: CompactionSettings = field(default_factory=CompactionSettings)
    relevant_notes: RelevantNotesSettings = field(default_factory=RelevantNotesSettings)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
