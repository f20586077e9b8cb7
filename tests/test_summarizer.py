"""Tests for the summarizer adapters."""

from types import SimpleNamespace

import pytest
from context.summarizer import LLMSummarizer, SummarizationError, call_summarizer


class RecordingClient:
    def __init__(self, content="A short summary.\n"):
        self.content = content
        self.kwargs = None

    def generate(self, **kwargs):
        self.kwargs = kwargs
        return SimpleNamespace(content=self.content)


class AsyncClient(RecordingClient):
    async def generate(self, **kwargs):
        self.kwargs = kwargs
        return SimpleNamespace(content=self.content)


class TestLLMSummarizer:
    @pytest.mark.asyncio
    async def test_formats_prompt_and_strips_output(self, fresh_settings):
        client = RecordingClient()
        summary = await LLMSummarizer(client).summarize("Body of the note", target_char_count=400)

        assert summary == "A short summary."
        assert "Body of the note" in client.kwargs["prompt"]
        assert "at most 400 characters" in client.kwargs["prompt"]
        assert client.kwargs["temperature"] == 0.1
        assert "model" not in client.kwargs

    @pytest.mark.asyncio
    async def test_temperature_from_settings(self, monkeypatch, fresh_settings):
        monkeypatch.setenv("COMPACTION_TEMPERATURE", "0.3")
        fresh_settings.cache_clear()
        client = RecordingClient()
        summarizer = LLMSummarizer(client)
        await summarizer.summarize("text")

        assert summarizer.temperature == 0.3
        assert client.kwargs["temperature"] == 0.3
        assert LLMSummarizer(client, temperature=0.0).temperature == 0.0

    @pytest.mark.asyncio
    async def test_async_client_and_model(self):
        client = AsyncClient()
        summary = await LLMSummarizer(client, model="small-model").summarize("text")

        assert summary == "A short summary."
        assert client.kwargs["model"] == "small-model"
        assert "at most" not in client.kwargs["prompt"]

    @pytest.mark.asyncio
    async def test_empty_output_raises(self):
        with pytest.raises(SummarizationError):
            await LLMSummarizer(RecordingClient(content="  ")).summarize("text")


class TestCallSummarizer:
    @pytest.mark.asyncio
    async def test_plain_sync_function(self):
        assert await call_summarizer(lambda text, target: f" {text[:3]} ", "abcdef") == "abc"

    @pytest.mark.asyncio
    async def test_non_string_result_raises(self):
        with pytest.raises(SummarizationError):
            await call_summarizer(lambda text, target: None, "abc")

    @pytest.mark.asyncio
    async def test_propagates_errors(self):
        def broken(text, target):
            raise ConnectionError("offline")

        with pytest.raises(ConnectionError):
            await call_summarizer(broken, "abc")
