"""Motion analysis: one Gemini call over the inline clip, retried only when overloaded."""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path

from google.genai import types

from .client import GeminiClient
from .config import ServerConfig, get_config
from .errors import AnalysisError
from .models.acquisition import VideoAsset
from .models.frames import ANALYSIS_SECTIONS, AnalysisSpec, FrameSet
from .prompts.motion import DURATION_HINT, FRAME_HINT, MOTION_ANALYSIS
from .retry import RetryExhaustedError, RetryPolicy, is_overloaded, with_retry

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^#{1,6}\s*(.+?)\s*:?\s*$", re.MULTILINE)


def _section_key(heading: str) -> str:
    return re.sub(r"[^a-z]+", "_", heading.lower()).strip("_")


def parse_sections(text: str) -> dict[str, str]:
    """Split Gemini's Markdown answer into the known sections.

    Unknown headings are ignored; missing sections map to "".
    """
    sections = dict.fromkeys(ANALYSIS_SECTIONS, "")
    matches = list(_HEADING_RE.finditer(text))
    for i, m in enumerate(matches):
        key = _section_key(m.group(1))
        if key not in sections:
            continue
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        sections[key] = text[m.end():end].strip()
    return sections


def build_prompt(frames: FrameSet | None, frame_count: int) -> str:
    duration_hint = ""
    frame_hint = ""
    if frames is not None:
        duration_hint = DURATION_HINT.format(seconds=frames.duration_seconds)
        if frame_count:
            frame_hint = FRAME_HINT.format(count=frame_count, interval=1 / frames.fps)
    return MOTION_ANALYSIS.format(duration_hint=duration_hint, frame_hint=frame_hint).strip()


async def build_contents(
    asset: VideoAsset,
    frames: FrameSet | None = None,
    *,
    max_frames: int = 0,
) -> types.Content:
    """Inline video part, optional frame parts, then the prompt text."""
    data = await asyncio.to_thread(asset.read_bytes)
    parts = [types.Part.from_bytes(data=data, mime_type=asset.mime_type)]

    selected = list(frames.frames[:max_frames]) if frames is not None and max_frames else []
    for frame in selected:
        image = await asyncio.to_thread(Path(frame.path).read_bytes)
        parts.append(types.Part.from_bytes(data=image, mime_type="image/png"))

    parts.append(types.Part(text=build_prompt(frames, len(selected))))
    return types.Content(role="user", parts=parts)


class _AttemptCounter:
    """Wraps the Gemini call so the analyzer knows how many calls were made."""

    def __init__(self, contents: types.Content, model: str) -> None:
        self.contents = contents
        self.model = model
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        return await GeminiClient.generate(
            self.contents,
            model=self.model,
        )


async def analyze_motion(
    asset: VideoAsset,
    frames: FrameSet | None = None,
    *,
    output_path: Path | None = None,
    include_frames: bool = False,
    cfg: ServerConfig | None = None,
) -> AnalysisSpec:
    """Describe the clip's animation as an ``AnalysisSpec``.

    Args:
        asset: The acquired clip; sent inline, so it must fit the inline limit.
        frames: Sampled frames, used for timing hints and optionally attached.
        output_path: Where to write the analysis text (the scratch area).
        include_frames: Attach up to ``analysis_max_frames`` stills.
        cfg: Config override, mostly for tests.

    Raises:
        AnalysisError: On oversize input, a non-retryable failure, or after
            ``analysis_max_attempts`` consecutive overloaded responses.
    """
    cfg = cfg or get_config()
    if asset.size_bytes > cfg.inline_video_max_bytes:
        raise AnalysisError(
            f"Clip is {asset.size_bytes} bytes; inline analysis accepts at most "
            f"{cfg.inline_video_max_bytes}. Trim it to 5-30s and start again",
            attempts=0,
            overloaded=False,
        )

    max_frames = cfg.analysis_max_frames if include_frames else 0
    contents = await build_contents(asset, frames, max_frames=max_frames)
    call = _AttemptCounter(contents, cfg.default_model)
    policy = RetryPolicy(
        max_attempts=cfg.analysis_max_attempts,
        delay_seconds=cfg.analysis_retry_delay,
        is_retryable=is_overloaded,
    )

    try:
        text = await with_retry(call, policy)
    except RetryExhaustedError as exc:
        raise AnalysisError(
            f"Motion analysis failed after {exc.attempts} attempts: {exc.last_error}",
            attempts=exc.attempts,
            overloaded=True,
        ) from exc
    except Exception as exc:
        raise AnalysisError(
            f"Motion analysis failed after {call.calls} attempt(s): {exc}",
            attempts=call.calls,
            overloaded=False,
        ) from exc

    if not text.strip():
        raise AnalysisError(
            "Gemini returned an empty analysis", attempts=call.calls, overloaded=False
        )

    path = ""
    if output_path is not None:
        await asyncio.to_thread(output_path.write_text, text)
        path = str(output_path)

    logger.info("Motion analysis: %d chars after %d call(s)", len(text), call.calls)
    return AnalysisSpec(
        text=text,
        sections=parse_sections(text),
        model=cfg.default_model,
        attempts=call.calls,
        path=path,
    )
