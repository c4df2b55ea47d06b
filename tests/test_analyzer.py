"""Tests for the motion analyzer — inline payload, retry on overload, section parsing."""

from __future__ import annotations

import pytest
from google.genai import types

from motion_clone_mcp.analyzer import analyze_motion, build_contents, parse_sections
from motion_clone_mcp.errors import AnalysisError
from motion_clone_mcp.models.frames import ANALYSIS_SECTIONS, Frame, FrameSet

OVERLOADED = "503 UNAVAILABLE. {'error': {'code': 503, 'message': 'The model is overloaded. Please try again later.'}}"

ANALYSIS_TEXT = """\
## Layout
400x300 card centred on a light grey background.

## Elements
- Blue circle, 48px, #3B82F6

## Sequence
1. Circle scales in
2. Card fades up

## Timing
Step 1: 0-300ms, ease-out. Step 2: 200-600ms, cubic-bezier(0.2, 0.8, 0.2, 1).

## Trigger
Page load.

## Final State
Card fully visible, circle at rest.
"""


@pytest.fixture()
def frameset(tmp_path) -> FrameSet:
    frames = []
    for i in range(1, 5):
        p = tmp_path / f"frame_{i:04d}.png"
        p.write_bytes(b"\x89PNG" + bytes([i]))
        frames.append(Frame(index=i, path=str(p), timestamp=(i - 1) / 2))
    return FrameSet(directory=str(tmp_path), fps=2.0, duration_seconds=2.0, frames=tuple(frames))


class TestParseSections:
    def test_all_sections(self):
        sections = parse_sections(ANALYSIS_TEXT)
        assert set(sections) == set(ANALYSIS_SECTIONS)
        assert sections["layout"].startswith("400x300 card")
        assert "cubic-bezier" in sections["timing"]
        assert sections["trigger"] == "Page load."
        assert sections["final_state"].startswith("Card fully visible")

    def test_missing_sections_are_empty(self):
        sections = parse_sections("## Timing\n300ms\n\n## Notes\nignored")
        assert sections["timing"] == "300ms"
        assert sections["layout"] == ""
        assert "notes" not in sections

    def test_heading_variants(self):
        sections = parse_sections("### FINAL STATE:\nsettled\n# trigger\nhover")
        assert sections["final_state"] == "settled"
        assert sections["trigger"] == "hover"


class TestBuildContents:
    async def test_video_then_prompt(self, video_asset):
        contents = await build_contents(video_asset)

        assert len(contents.parts) == 2
        assert contents.parts[0].inline_data.mime_type == "video/mp4"
        assert contents.parts[0].inline_data.data == video_asset.read_bytes()
        assert "## Timing" in contents.parts[1].text

    async def test_frames_attached_up_to_limit(self, video_asset, frameset):
        contents = await build_contents(video_asset, frameset, max_frames=3)

        images = [p for p in contents.parts if p.inline_data and p.inline_data.mime_type == "image/png"]
        assert len(images) == 3
        assert "3 still frames sampled every 0.50s" in contents.parts[-1].text
        assert "about 2.0 seconds long" in contents.parts[-1].text


class TestAnalyzeMotion:
    async def test_success_single_call(self, mock_generate, mock_sleep, video_asset, tmp_path):
        mock_generate.return_value = ANALYSIS_TEXT
        out = tmp_path / "analysis.md"

        spec = await analyze_motion(video_asset, output_path=out)

        mock_generate.assert_awaited_once()
        mock_sleep.assert_not_awaited()
        assert spec.attempts == 1
        assert spec.text == ANALYSIS_TEXT
        assert spec.sections["trigger"] == "Page load."
        assert out.read_text() == ANALYSIS_TEXT
        assert spec.path == str(out)
        contents = mock_generate.await_args.args[0]
        assert isinstance(contents, types.Content)

    async def test_overloaded_twice_then_success(self, mock_generate, mock_sleep, video_asset):
        mock_generate.side_effect = [Exception(OVERLOADED), Exception(OVERLOADED), ANALYSIS_TEXT]

        spec = await analyze_motion(video_asset)

        assert mock_generate.await_count == 3
        assert spec.attempts == 3
        assert spec.text == ANALYSIS_TEXT
        assert [c.args[0] for c in mock_sleep.await_args_list] == [5.0, 5.0]

    async def test_overloaded_exhaustion(self, mock_generate, mock_sleep, video_asset):
        mock_generate.side_effect = Exception(OVERLOADED)

        with pytest.raises(AnalysisError) as exc_info:
            await analyze_motion(video_asset)

        err = exc_info.value
        assert err.attempts == 3
        assert err.overloaded is True
        assert "after 3 attempts" in str(err)
        assert "The model is overloaded" in str(err)
        assert mock_generate.await_count == 3
        assert mock_sleep.await_count == 2

    @pytest.mark.parametrize("overloads", [0, 1, 2])
    async def test_calls_equal_overloads_plus_one(self, mock_generate, mock_sleep, video_asset, overloads):
        mock_generate.side_effect = [Exception(OVERLOADED)] * overloads + [ANALYSIS_TEXT]

        spec = await analyze_motion(video_asset)

        assert mock_generate.await_count == overloads + 1
        assert spec.attempts == overloads + 1

    async def test_non_retryable_fails_immediately(self, mock_generate, mock_sleep, video_asset):
        mock_generate.side_effect = Exception("400 INVALID_ARGUMENT. Unsupported MIME type")

        with pytest.raises(AnalysisError) as exc_info:
            await analyze_motion(video_asset)

        assert exc_info.value.attempts == 1
        assert exc_info.value.overloaded is False
        assert "Unsupported MIME type" in str(exc_info.value)
        mock_generate.assert_awaited_once()
        mock_sleep.assert_not_awaited()

    async def test_configured_attempts_and_delay(self, mock_generate, mock_sleep, video_asset, monkeypatch):
        monkeypatch.setenv("MOTION_ANALYSIS_MAX_ATTEMPTS", "2")
        monkeypatch.setenv("MOTION_ANALYSIS_RETRY_DELAY", "7.5")
        import motion_clone_mcp.config as cfg_mod
        cfg_mod._config = None
        mock_generate.side_effect = Exception(OVERLOADED)

        with pytest.raises(AnalysisError) as exc_info:
            await analyze_motion(video_asset)

        assert exc_info.value.attempts == 2
        mock_sleep.assert_awaited_once_with(7.5)

    async def test_oversize_clip_rejected_without_call(self, mock_generate, video_asset):
        big = video_asset.model_copy(update={"size_bytes": 50 * 1024 * 1024})

        with pytest.raises(AnalysisError, match="inline analysis accepts at most"):
            await analyze_motion(big)

        mock_generate.assert_not_awaited()

    async def test_empty_response_is_error(self, mock_generate, video_asset):
        mock_generate.return_value = "   "

        with pytest.raises(AnalysisError, match="empty analysis"):
            await analyze_motion(video_asset)

    async def test_include_frames_honours_config_limit(self, mock_generate, video_asset, frameset, monkeypatch):
        monkeypatch.setenv("MOTION_ANALYSIS_MAX_FRAMES", "2")
        import motion_clone_mcp.config as cfg_mod
        cfg_mod._config = None
        mock_generate.return_value = ANALYSIS_TEXT

        await analyze_motion(video_asset, frameset, include_frames=True)

        contents = mock_generate.await_args.args[0]
        assert len(contents.parts) == 4  # video + 2 frames + prompt

    async def test_frames_not_attached_by_default(self, mock_generate, video_asset, frameset, monkeypatch):
        monkeypatch.setenv("MOTION_ANALYSIS_MAX_FRAMES", "2")
        import motion_clone_mcp.config as cfg_mod
        cfg_mod._config = None
        mock_generate.return_value = ANALYSIS_TEXT

        await analyze_motion(video_asset, frameset)

        contents = mock_generate.await_args.args[0]
        assert len(contents.parts) == 2

    async def test_client_error_mentioning_503_is_not_retried(self, mock_generate, mock_sleep, video_asset):
        from google.genai import errors as genai_errors

        mock_generate.side_effect = genai_errors.ClientError(400, {"error": {
            "code": 400,
            "status": "INVALID_ARGUMENT",
            "message": "Request payload size 25035031 bytes exceeds the limit",
        }})

        with pytest.raises(AnalysisError) as exc_info:
            await analyze_motion(video_asset)

        assert exc_info.value.attempts == 1
        assert exc_info.value.overloaded is False
        mock_generate.assert_awaited_once()
        mock_sleep.assert_not_awaited()
