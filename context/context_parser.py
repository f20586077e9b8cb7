"""
Context block parsing.

A composed prompt payload interleaves plain text with typed blocks:

    <note_context>
    <title>Research Notes</title>
    <path>notes/research.md</path>
    <mtime>2025-01-01</mtime>
    <content>...</content>
    </note_context>

The scanner splits the payload into items and the raw text around them.
Malformed regions (unterminated or unknown tags) stay raw text, so the
segments always concatenate back to the exact source.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

BLOCK_TYPES = (
    "note_context",
    "active_note",
    "url_content",
    "selected_text",
    "embedded_note",
    "embedded_pdf",
    "web_tab_context",
    "active_web_tab",
    "youtube_video_context",
)

# Block types that use <url> instead of <path>
URL_BASED_TYPES = frozenset(
    {"url_content", "web_tab_context", "active_web_tab", "youtube_video_context"}
)

_CONTENT_OPEN = "<content>"
_CONTENT_CLOSE = "</content>"
_FIELD_PATTERN = re.compile(r"<([A-Za-z_][\w-]*)>([^<]*)</\1>")
_RESERVED_FIELDS = {"title", "path", "url", "content"}


@dataclass(frozen=True)
class ParsedContextItem:
    """One typed block found in a payload."""

    type: str
    path: str
    title: str
    content: str
    original_text: str
    start_offset: int
    end_offset: int
    metadata: Dict[str, str] = field(default_factory=dict)
    has_title: bool = True

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class RawText:
    """Untouched text between or around items."""

    text: str
    start_offset: int
    end_offset: int


Segment = Union[ParsedContextItem, RawText]


def _opening_pattern(block_types: Iterable[str]) -> "re.Pattern[str]":
    names = "|".join(re.escape(t) for t in sorted(block_types, key=len, reverse=True))
    return re.compile(rf"<({names})>")


def _find_block_end(source: str, block_type: str, body_start: int) -> Optional[int]:
    """
    Find the end offset of a block whose opening tag ends at body_start.

    Same-type nesting is counted so an inner block does not close the
    outer one. Returns None when the block is never closed.
    """
    opener = f"<{block_type}>"
    closer = f"</{block_type}>"
    depth = 1
    pos = body_start

    while depth > 0:
        close_at = source.find(closer, pos)
        if close_at == -1:
            return None
        open_at = source.find(opener, pos, close_at)
        if open_at != -1:
            depth += 1
            pos = open_at + len(opener)
            continue
        depth -= 1
        pos = close_at + len(closer)

    return pos


def _extract_content(block: str) -> str:
    start = block.find(_CONTENT_OPEN)
    end = block.rfind(_CONTENT_CLOSE)
    if start == -1 or end == -1 or end < start + len(_CONTENT_OPEN):
        return ""
    return block[start + len(_CONTENT_OPEN):end]


def _extract_fields(header: str) -> Dict[str, str]:
    """Collect simple <key>value</key> pairs, first occurrence wins."""
    fields: Dict[str, str] = {}
    for match in _FIELD_PATTERN.finditer(header):
        fields.setdefault(match.group(1), match.group(2))
    return fields


def parse_block(block: str, block_type: str, start_offset: int) -> ParsedContextItem:
    """
    Parse a single block into a ParsedContextItem.

    Args:
        block: Full block text including its outer tags
        block_type: Tag name of the block
        start_offset: Position of the block in the source payload

    Returns:
        ParsedContextItem spanning [start_offset, start_offset + len(block))
    """
    body = block[len(block_type) + 2:len(block) - len(block_type) - 3]
    content_at = body.find(_CONTENT_OPEN)
    header = body if content_at == -1 else body[:content_at]
    fields = _extract_fields(header)

    path = fields.get("path") or fields.get("url") or ""
    title = fields.get("title") or path.split("/")[-1] or "Untitled"
    metadata = {k: v for k, v in fields.items() if k not in _RESERVED_FIELDS}

    return ParsedContextItem(
        type=block_type,
        path=path,
        title=title,
        content=_extract_content(body),
        original_text=block,
        start_offset=start_offset,
        end_offset=start_offset + len(block),
        metadata=metadata,
        has_title="title" in fields,
    )


def scan_context_blocks(
    source: str,
    block_types: Sequence[str] = BLOCK_TYPES,
) -> List[Segment]:
    """
    Scan a payload into item and raw-text segments.

    Blocks nested inside another block belong to the outer block's
    content and are never emitted separately. An opening tag without a
    matching close is kept as raw text and scanning resumes after it.

    Args:
        source: Composed prompt payload
        block_types: Tag names recognized as context blocks

    Returns:
        Segments in source order, covering the source exactly
    """
    segments: List[Segment] = []
    if not block_types:
        return [RawText(source, 0, len(source))] if source else []

    opening = _opening_pattern(block_types)
    raw_start = 0
    pos = 0

    while True:
        match = opening.search(source, pos)
        if match is None:
            break

        block_type = match.group(1)
        end = _find_block_end(source, block_type, match.end())
        if end is None:
            logger.debug(f"Unterminated <{block_type}> at offset {match.start()}, kept as text")
            pos = match.end()
            continue

        if match.start() > raw_start:
            segments.append(RawText(source[raw_start:match.start()], raw_start, match.start()))
        segments.append(parse_block(source[match.start():end], block_type, match.start()))
        raw_start = pos = end

    if raw_start < len(source):
        segments.append(RawText(source[raw_start:], raw_start, len(source)))

    return segments


def parse_context_items(
    source: str,
    block_types: Sequence[str] = BLOCK_TYPES,
) -> List[ParsedContextItem]:
    """Return only the items of a payload, ascending by offset."""
    return [s for s in scan_context_blocks(source, block_types) if isinstance(s, ParsedContextItem)]


def reassemble(segments: Iterable[Segment]) -> str:
    """Concatenate segments back into a payload."""
    return "".join(
        s.original_text if isinstance(s, ParsedContextItem) else s.text for s in segments
    )


def splice_items(
    source: str,
    items: Sequence[ParsedContextItem],
    replacements: Mapping[int, str],
) -> str:
    """
    Replace items in the source by index.

    Works from the end of the document backward so earlier offsets stay
    valid. An empty mapping returns the source unchanged.

    Args:
        source: Payload the items were parsed from
        items: Parsed items (non-overlapping)
        replacements: Item index to replacement text

    Returns:
        Payload with replaced blocks
    """
    result = source
    for index in sorted(replacements, key=lambda i: items[i].start_offset, reverse=True):
        item = items[index]
        result = result[:item.start_offset] + replacements[index] + result[item.end_offset:]
    return result


def build_block(item: ParsedContextItem, summary: str, marker: str = "[SUMMARIZED]") -> str:
    """
    Build a block for an item with replaced content.

    Title, path (or url) and metadata are preserved so citations still
    resolve after compaction. A title is written only when the source block
    carried one; metadata is kept even when empty.
    """
    parts = [f"<{item.type}>"]

    if item.has_title:
        parts.append(f"<title>{item.title}</title>")
    if item.path:
        tag = "url" if item.type in URL_BASED_TYPES else "path"
        parts.append(f"<{tag}>{item.path}</{tag}>")
    for key, value in item.metadata.items():
        parts.append(f"<{key}>{value}</{key}>")

    body = f"{marker}\n{summary}" if marker else summary
    parts.append(f"{_CONTENT_OPEN}{body}{_CONTENT_CLOSE}")
    parts.append(f"</{item.type}>")

    return "\n".join(parts)
