"""Shared test fixtures for motion-clone-mcp."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from motion_clone_mcp.models.acquisition import VideoAsset


def unwrap_tool(tool: Any) -> Any:
    """Extract the raw coroutine from a FastMCP FunctionTool, if wrapped.

    FastMCP 2.x wraps @server.tool functions in FunctionTool (not callable).
    FastMCP 3.x preserves the original function. This helper works with both.
    """
    return getattr(tool, "fn", tool)


@pytest.fixture(autouse=True)
def _set_dummy_api_key(monkeypatch):
    """Ensure tests never hit real Gemini API."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key-not-real")


@pytest.fixture(autouse=True)
def _isolate_dotenv(tmp_path, monkeypatch):
    """Prevent tests from loading the user's real ~/.config/motion-clone-mcp/.env."""
    monkeypatch.setattr(
        "motion_clone_mcp.dotenv.DEFAULT_ENV_PATH",
        tmp_path / "nonexistent.env",
    )


@pytest.fixture(autouse=True)
def scratch_base(tmp_path, monkeypatch):
    """Point the scratch area at a temp directory and reset config around each test."""
    import motion_clone_mcp.config as cfg_mod

    base = tmp_path / "scratch"
    monkeypatch.setenv("MOTION_SCRATCH_DIR", str(base))
    cfg_mod._config = None
    yield base
    cfg_mod._config = None


@pytest.fixture(autouse=True)
def _reset_session_store():
    """Drop sessions the previous test left in the module-level store."""
    from motion_clone_mcp.sessions import session_store

    session_store._sessions.clear()
    yield
    session_store._sessions.clear()


@pytest.fixture()
def mock_generate():
    """Patch GeminiClient.generate for unit tests."""
    with patch(
        "motion_clone_mcp.client.GeminiClient.generate", new_callable=AsyncMock
    ) as mock_gen:
        yield mock_gen


@pytest.fixture()
def mock_sleep():
    """Patch the retry delay so tests don't wait."""
    with patch("motion_clone_mcp.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


@pytest.fixture()
def clip_file(tmp_path) -> Path:
    """A small local file standing in for an mp4 clip."""
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 4096)
    return path


@pytest.fixture()
def video_asset(clip_file) -> VideoAsset:
    return VideoAsset(
        path=str(clip_file),
        size_bytes=clip_file.stat().st_size,
        mime_type="video/mp4",
        source=str(clip_file),
        strategy="local",
    )
