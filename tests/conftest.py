"""
Pytest configuration for the context engine test suite.

Configures:
- async tests run through pytest-asyncio (@pytest.mark.asyncio)
- shared payload builders and fake summarizers
- a settings cache reset for environment-driven tests
"""
import pytest
from shared.config import get_settings


def build_block(block_type: str, path: str, content: str, **metadata: str) -> str:
    """Build a context block the way the chat pipeline composes them."""
    tag = "url" if block_type in {"url_content", "web_tab_context"} else "path"
    lines = [f"<{block_type}>", f"<title>{path}</title>", f"<{tag}>{path}</{tag}>"]
    for key, value in metadata.items():
        lines.append(f"<{key}>{value}</{key}>")
    lines.append(f"<content>{content}</content>")
    lines.append(f"</{block_type}>")
    return "\n".join(lines)


class FakeSummarizer:
    """Records calls; fails the first `fail_times` calls when configured."""

    def __init__(self, summary: str = "Concise summary.", fail_times: int = 0):
        self.summary = summary
        self.fail_times = fail_times
        self.calls = []

    async def summarize(self, text, target_char_count=None):
        self.calls.append((text, target_char_count))
        if len(self.calls) <= self.fail_times:
            raise RuntimeError("model failure")
        return self.summary


@pytest.fixture
def note_block():
    return build_block


@pytest.fixture
def make_summarizer():
    return FakeSummarizer


@pytest.fixture
def fresh_settings():
    """Reload settings from the environment for the duration of a test."""
    get_settings.cache_clear()
    yield get_settings
    get_settings.cache_clear()
