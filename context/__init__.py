"""
Context Budget and Compaction Module.

Treat injected prompt context as a resource with a budget.

This module handles:
- Token and character budgets per model context window
- Parsing typed context blocks out of a composed payload
- Summarizing oversized blocks to fit a budget

Usage:
    from context import BudgetConfig, ContextCompactor, CompactionOptions

    budget = BudgetConfig.from_settings(get_settings(), context_window_tokens=32000)
    compactor = ContextCompactor(summarizer)
    result = await compactor.compact(payload, options=CompactionOptions(
        target_char_count=budget.local_search_context_char_budget,
    ))
"""

from .context_budgeting import (
    APPROX_CHARS_PER_TOKEN,
    MODEL_AWARE_RATIO,
    BudgetConfig,
    chars_to_tokens,
    count_tokens,
    resolve_compaction_threshold_tokens,
    resolve_local_search_context_char_budget,
    tokens_to_chars,
)
from .context_compactor import CompactionOptions, ContextCompactor, compact_context
from .context_parser import (
    BLOCK_TYPES,
    ParsedContextItem,
    RawText,
    build_block,
    parse_context_items,
    reassemble,
    scan_context_blocks,
    splice_items,
)
from .summarizer import LLMSummarizer, SummarizationError, Summarizer

__all__ = [
    "APPROX_CHARS_PER_TOKEN",
    "MODEL_AWARE_RATIO",
    "BudgetConfig",
    "resolve_compaction_threshold_tokens",
    "resolve_local_search_context_char_budget",
    "tokens_to_chars",
    "chars_to_tokens",
    "count_tokens",
    "BLOCK_TYPES",
    "ParsedContextItem",
    "RawText",
    "scan_context_blocks",
    "parse_context_items",
    "reassemble",
    "splice_items",
    "build_block",
    "ContextCompactor",
    "CompactionOptions",
    "compact_context",
    "Summarizer",
    "LLMSummarizer",
    "SummarizationError",
]
