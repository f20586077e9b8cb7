"""
Summarizer boundary for context compaction.

The compactor only needs `summarize(text, target_char_count=None) -> str`,
sync or async. LLMSummarizer adapts any LLM client exposing
`generate(prompt=..., temperature=..., max_tokens=...)`.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol, Union, runtime_checkable

from shared.config import get_settings

logger = logging.getLogger(__name__)


SUMMARIZATION_PROMPT = """Summarize the following content, preserving:
- Key concepts and main ideas
- Important facts, names, and dates
- Technical details relevant for Q&A

Keep the summary concise but information-dense. Output only the summary.
{length_hint}
Content:
{content}

Summary:"""


class SummarizationError(Exception):
    """Raised when a summarizer produces no usable output."""

    pass


@runtime_checkable
class Summarizer(Protocol):
    def summarize(
        self, text: str, target_char_count: Optional[int] = None
    ) -> Union[str, Awaitable[str]]:
        ...


SummarizeFn = Callable[..., Union[str, Awaitable[str]]]


async def call_summarizer(
    summarizer: Union[Summarizer, SummarizeFn],
    text: str,
    target_char_count: Optional[int] = None,
) -> str:
    """
    Invoke a summarizer object or plain callable and await if needed.

    Returns:
        The stripped summary

    Raises:
        SummarizationError: If the summary is empty
        Exception: Original exception from the summarizer
    """
    fn = summarizer.summarize if hasattr(summarizer, "summarize") else summarizer
    if inspect.iscoroutinefunction(fn):
        result = await fn(text, target_char_count)
    else:
        # Sync summarizers run in a worker thread so callers' deadlines can fire
        result = await asyncio.to_thread(fn, text, target_char_count)
    if inspect.isawaitable(result):
        result = await result

    summary = result.strip() if isinstance(result, str) else ""
    if not summary:
        raise SummarizationError("Summarizer returned an empty summary")
    return summary


class LLMSummarizer:
    """
    LLM-backed summarizer.

    Uses a low temperature for deterministic summaries.

    Usage:
        summarizer = LLMSummarizer(llm_client)
        summary = await summarizer.summarize(text, target_char_count=4000)
    """

    def __init__(
        self,
        llm_client: Any,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: int = 2048,
    ):
        """
        Args:
            llm_client: Client with a (sync or async) generate method
            model: Model to use (defaults to client default)
            temperature: Sampling temperature (defaults to compaction settings)
            max_tokens: Max tokens for the summary
        """
        self.llm_client = llm_client
        self.model = model
        self.temperature = (
            temperature if temperature is not None else get_settings().compaction.temperature
        )
        self.max_tokens = max_tokens

    def build_prompt(self, text: str, target_char_count: Optional[int] = None) -> str:
        length_hint = (
            f"Aim for at most {target_char_count} characters.\n"
            if target_char_count is not None
            else ""
        )
        return SUMMARIZATION_PROMPT.format(length_hint=length_hint, content=text)

    async def summarize(self, text: str, target_char_count: Optional[int] = None) -> str:
        kwargs = {
            "prompt": self.build_prompt(text, target_char_count),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if self.model:
            kwargs["model"] = self.model

        response = self.llm_client.generate(**kwargs)
        if inspect.isawaitable(response):
            response = await response

        content = getattr(response, "content", response)
        if not isinstance(content, str) or not content.strip():
            raise SummarizationError("LLM returned no summary content")
        return content.strip()
