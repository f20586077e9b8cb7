"""
Context compaction by summarization.

When injected context exceeds its budget, large blocks are replaced with
summaries:

1. PARSE: split the payload into typed blocks (note_context, url_content, ...)
2. MAP: summarize candidate blocks, largest first, one call at a time
3. REDUCE: splice summaries back into the original block positions

Compaction is advisory. Every failure path returns the original content
with a structured no-op reason instead of raising.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from shared.config import CompactionSettings, get_settings
from shared.schemas import CompactionNoOpReason, CompactionResult

from .context_parser import (
    BLOCK_TYPES,
    ParsedContextItem,
    build_block,
    parse_context_items,
    splice_items,
)
from .summarizer import SummarizeFn, Summarizer, call_summarizer

logger = logging.getLogger(__name__)


@dataclass
class CompactionOptions:
    """Per-call compaction options."""

    target_char_count: Optional[int] = None
    timeout_seconds: Optional[float] = None


@dataclass
class SummarizationProgress:
    """Running tally of one map phase."""

    estimated_length: int
    summaries: Dict[int, str] = field(default_factory=dict)
    replacements: Dict[int, str] = field(default_factory=dict)
    attempted: int = 0
    failed: int = 0
    high_failure_rate: bool = False

    @property
    def failure_rate(self) -> float:
        return self.failed / self.attempted if self.attempted else 0.0


def normalize_target_char_count(target_char_count) -> Optional[int]:
    """Normalize a target size into a non-negative int, or None when absent."""
    if isinstance(target_char_count, bool) or not isinstance(target_char_count, (int, float)):
        return None
    if not math.isfinite(target_char_count):
        return None
    return max(0, math.floor(target_char_count))


class ContextCompactor:
    """
    Compress injected context with an external summarizer.

    Usage:
        compactor = ContextCompactor(LLMSummarizer(llm_client))
        result = await compactor.compact(
            payload, options=CompactionOptions(target_char_count=20000)
        )
        payload = result.content
    """

    def __init__(
        self,
        summarizer: Union[Summarizer, SummarizeFn],
        config: Optional[CompactionSettings] = None,
        block_types: Sequence[str] = BLOCK_TYPES,
    ):
        """
        Args:
            summarizer: Summarizer object or callable (sync or async)
            config: Compaction settings (defaults to global settings)
            block_types: Tag names treated as context blocks
        """
        self.summarizer = summarizer
        self.config = config or get_settings().compaction
        self.block_types = tuple(block_types)

    async def compact(
        self,
        content: str,
        items: Optional[List[ParsedContextItem]] = None,
        options: Optional[CompactionOptions] = None,
    ) -> CompactionResult:
        """
        Compact a payload.

        Args:
            content: Composed payload
            items: Items parsed from content (parsed here when None)
            options: Target size and deadline

        Returns:
            CompactionResult; content is the original on every no-op path
        """
        options = options or CompactionOptions()
        target = normalize_target_char_count(options.target_char_count)
        if items is None:
            items = parse_context_items(content, self.block_types)

        timeout = options.timeout_seconds
        if timeout is None and self.config.timeout_seconds > 0:
            timeout = self.config.timeout_seconds

        logger.info(
            f"Starting compaction of {len(content)} chars, {len(items)} items"
            + (f" (target <= {target})" if target is not None else "")
        )

        if timeout is None:
            return await self._compact(content, items, target)

        try:
            return await asyncio.wait_for(self._compact(content, items, target), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Compaction timed out after {timeout}s, keeping original content")
            return self._no_op(
                content,
                CompactionNoOpReason.HIGH_FAILURE_RATE,
                items_processed=len(items),
                target_char_count=target,
            )

    async def _compact(
        self,
        content: str,
        items: List[ParsedContextItem],
        target: Optional[int],
    ) -> CompactionResult:
        original_char_count = len(content)

        if not items:
            return self._no_op(content, CompactionNoOpReason.NO_ITEMS, target_char_count=target)

        if target is not None and original_char_count <= target:
            return self._no_op(
                content,
                CompactionNoOpReason.NO_REDUCTION,
                items_processed=len(items),
                target_char_count=target,
            )

        candidates = self.select_candidates(items, original_char_count, target)
        if not candidates:
            return self._no_op(
                content,
                CompactionNoOpReason.NO_CANDIDATES,
                items_processed=len(items),
                target_char_count=target,
            )

        progress = await self._summarize_candidates(items, candidates, original_char_count, target)
        if progress.high_failure_rate:
            return self._no_op(
                content,
                CompactionNoOpReason.HIGH_FAILURE_RATE,
                items_processed=len(items),
                target_char_count=target,
            )

        if not progress.replacements:
            return self._no_op(
                content,
                CompactionNoOpReason.NO_REDUCTION,
                items_processed=len(items),
                target_char_count=target,
            )

        compacted = splice_items(content, items, progress.replacements)
        if len(compacted) >= original_char_count:
            return self._no_op(
                content,
                CompactionNoOpReason.NO_REDUCTION,
                items_processed=len(items),
                target_char_count=target,
            )

        target_met = len(compacted) <= target if target is not None else None
        reduction = (1 - len(compacted) / original_char_count) * 100
        logger.info(
            f"Compaction done: {original_char_count} -> {len(compacted)} chars "
            f"({reduction:.0f}% reduction, {len(progress.replacements)}/{len(items)} items)"
            + (f", target_met={target_met}" if target is not None else "")
        )

        return CompactionResult(
            content=compacted,
            was_compacted=True,
            original_char_count=original_char_count,
            compacted_char_count=len(compacted),
            items_processed=len(items),
            items_summarized=len(progress.replacements),
            target_char_count=target,
            target_met=target_met,
        )

    def resolve_min_item_size(self, original_char_count: int, target: Optional[int]) -> int:
        """
        Resolve the minimum content size worth summarizing.

        Without a target the mode's base size applies. Under budget pressure
        the threshold shrinks with the square of target/original, down to
        the mode's floor.
        """
        base, floor = self.config.get_mode_profile()
        if target is None or original_char_count <= 0:
            return base

        ratio = min(max(target / original_char_count, 0.0), 1.0)
        pressure_scale = max(self.config.min_pressure_scale, ratio * ratio)
        return max(floor, math.floor(base * pressure_scale))

    def select_candidates(
        self,
        items: Sequence[ParsedContextItem],
        original_char_count: int,
        target: Optional[int] = None,
    ) -> List[int]:
        """Candidate item indexes, largest content first."""
        min_item_size = self.resolve_min_item_size(original_char_count, target)
        candidates = sorted(
            (i for i, item in enumerate(items) if item.size >= min_item_size),
            key=lambda i: items[i].size,
            reverse=True,
        )
        logger.info(f"Candidate threshold={min_item_size}, candidates={len(candidates)}/{len(items)}")
        return candidates

    async def _summarize_candidates(
        self,
        items: Sequence[ParsedContextItem],
        candidates: List[int],
        original_char_count: int,
        target: Optional[int],
    ) -> SummarizationProgress:
        progress = SummarizationProgress(estimated_length=original_char_count)
        interval = max(1, self.config.failure_check_interval)

        for index in candidates:
            if target is not None and progress.estimated_length <= target:
                break

            item = items[index]
            summary = await self._summarize_with_retry(item, index, target)
            progress.attempted += 1

            if summary is None:
                progress.failed += 1
            else:
                replacement = build_block(item, summary, self.config.summary_marker)
                progress.summaries[index] = summary
                progress.replacements[index] = replacement
                progress.estimated_length += len(replacement) - len(item.original_text)

            if progress.attempted >= interval and self._exceeds_tolerance(progress):
                return progress

        self._exceeds_tolerance(progress)
        return progress

    def _exceeds_tolerance(self, progress: SummarizationProgress) -> bool:
        if progress.attempted and progress.failure_rate > self.config.failure_tolerance:
            logger.warning(
                f"High summarization failure rate ({progress.failed}/{progress.attempted}), "
                "aborting compaction"
            )
            progress.high_failure_rate = True
        return progress.high_failure_rate

    async def _summarize_with_retry(
        self,
        item: ParsedContextItem,
        index: int,
        target: Optional[int],
    ) -> Optional[str]:
        """Summarize one item, retrying immediately on failure. None when all tries fail."""
        text = item.content
        if len(text) > self.config.max_item_chars:
            text = text[:self.config.max_item_chars] + "\n" + self.config.truncation_marker

        for attempt in range(1 + max(0, self.config.max_retries)):
            try:
                return await call_summarizer(self.summarizer, text, target)
            except Exception as e:
                logger.warning(
                    f"Failed to summarize item {index} ({item.path or item.type}), "
                    f"attempt {attempt + 1}: {e}"
                )
        return None

    def _no_op(
        self,
        content: str,
        reason: CompactionNoOpReason,
        items_processed: int = 0,
        target_char_count: Optional[int] = None,
    ) -> CompactionResult:
        target_met = len(content) <= target_char_count if target_char_count is not None else None
        logger.info(
            f"Compaction no-op ({reason.value})"
            + (f" target={target_char_count}" if target_char_count is not None else "")
        )
        return CompactionResult(
            content=content,
            was_compacted=False,
            original_char_count=len(content),
            compacted_char_count=len(content),
            items_processed=items_processed,
            items_summarized=0,
            target_char_count=target_char_count,
            target_met=target_met,
            no_op_reason=reason,
        )


async def compact_context(
    content: str,
    summarizer: Union[Summarizer, SummarizeFn],
    items: Optional[List[ParsedContextItem]] = None,
    options: Optional[CompactionOptions] = None,
    config: Optional[CompactionSettings] = None,
) -> CompactionResult:
    """Convenience wrapper for a one-off compaction pass."""
    compactor = ContextCompactor(summarizer, config=config)
    return await compactor.compact(content, items=items, options=options)
