"""Tests for the shared Gemini client wrapper."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from motion_clone_mcp.client import GeminiClient


def _response(*parts):
    content = SimpleNamespace(parts=list(parts))
    return SimpleNamespace(candidates=[SimpleNamespace(content=content)], text=None)


def _part(text, thought=False):
    return SimpleNamespace(text=text, thought=thought)


@pytest.fixture()
def fake_client():
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock()
    with patch.object(GeminiClient, "get", return_value=client):
        yield client


class TestGenerate:
    async def test_strips_thought_parts(self, fake_client):
        fake_client.aio.models.generate_content.return_value = _response(
            _part("thinking...", thought=True),
            _part("## Layout"),
            _part("card"),
        )

        text = await GeminiClient.generate("prompt", model="gemini-test")

        assert text == "## Layout\ncard"
        kwargs = fake_client.aio.models.generate_content.await_args.kwargs
        assert kwargs["model"] == "gemini-test"
        assert kwargs["config"].temperature == 0.4

    async def test_single_call_even_when_overloaded(self, fake_client, mock_sleep):
        fake_client.aio.models.generate_content.side_effect = Exception("503 overloaded")

        with pytest.raises(Exception, match="503"):
            await GeminiClient.generate("prompt")

        fake_client.aio.models.generate_content.assert_awaited_once()
        mock_sleep.assert_not_awaited()


class TestGet:
    def test_missing_key_raises(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "")
        import motion_clone_mcp.config as cfg_mod
        cfg_mod._config = None

        with pytest.raises(ValueError, match="No Gemini API key"):
            GeminiClient.get()

    def test_reuses_client_per_key(self):
        with patch("motion_clone_mcp.client.genai.Client") as ctor:
            a = GeminiClient.get("key-one")
            b = GeminiClient.get("key-one")
        GeminiClient._clients.clear()

        assert a is b
        ctor.assert_called_once_with(api_key="key-one")
