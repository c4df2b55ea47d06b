"""Fixed-rate frame sampling via ffmpeg.

Frames land in a staging directory first and are moved into place only
when the full sequence exists, so a session never sees a partial set.
"""

from __future__ import annotations

import logging
import math
import re
import shutil
from pathlib import Path

from .config import ServerConfig, get_config
from .errors import CorruptOrUnsupportedMedia, SubprocessError
from .models.acquisition import VideoAsset
from .models.frames import Frame, FrameSet
from .runner import run_tool
from .scratch import ScratchArea

logger = logging.getLogger(__name__)

FRAME_PATTERN = "frame_%04d.png"
_FRAME_RE = re.compile(r"^frame_(\d+)\.png$")
_STAGING_DIRNAME = ".frames-staging"


def expected_frame_count(duration_seconds: float, fps: float) -> int:
    """floor(duration × fps), tolerant of float noise like 9.999999."""
    return math.floor(duration_seconds * fps + 1e-6)


async def probe_duration(path: str, *, timeout: int) -> float:
    """Clip duration in seconds as reported by ffprobe.

    Raises:
        CorruptOrUnsupportedMedia: When ffprobe cannot read a duration.
    """
    try:
        result = await run_tool(
            "ffprobe",
            "-v", "error",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            path,
            timeout=timeout,
        )
    except SubprocessError as exc:
        raise CorruptOrUnsupportedMedia(f"ffprobe could not read {path}: {exc.stderr.strip()}") from exc

    raw = result.stdout.strip().splitlines()[0] if result.stdout.strip() else ""
    try:
        duration = float(raw)
    except ValueError as exc:
        raise CorruptOrUnsupportedMedia(f"No duration reported for {path} (got {raw!r})") from exc
    if duration <= 0:
        raise CorruptOrUnsupportedMedia(f"Non-positive duration {duration} for {path}")
    return duration


def _collect_frames(directory: Path) -> list[Path]:
    numbered = []
    for p in directory.iterdir():
        m = _FRAME_RE.match(p.name)
        if m:
            numbered.append((int(m.group(1)), p))
    return [p for _, p in sorted(numbered)]


async def sample_frames(
    asset: VideoAsset,
    scratch: ScratchArea,
    *,
    fps: float | None = None,
    cfg: ServerConfig | None = None,
) -> FrameSet:
    """Extract one still every ``1/fps`` seconds, numbered from 1.

    Raises:
        CorruptOrUnsupportedMedia: On decode failure or an incomplete sequence.
        DependencyMissingError: When ffmpeg/ffprobe is not installed.
    """
    cfg = cfg or get_config()
    rate = fps if fps is not None else cfg.frame_rate
    if rate <= 0:
        raise ValueError("fps must be > 0")

    duration = await probe_duration(asset.path, timeout=cfg.subprocess_timeout)
    expected = expected_frame_count(duration, rate)
    if expected < 1:
        raise CorruptOrUnsupportedMedia(
            f"Clip is {duration:.2f}s, shorter than one sampling interval at {rate} fps"
        )

    staging = scratch.root / _STAGING_DIRNAME
    shutil.rmtree(staging, ignore_errors=True)
    staging.mkdir(parents=True)
    try:
        await run_tool(
            "ffmpeg",
            "-v", "error",
            "-i", asset.path,
            "-vf", f"fps={rate}",
            "-frames:v", str(expected),
            str(staging / FRAME_PATTERN),
            timeout=cfg.subprocess_timeout,
        )
        produced = _collect_frames(staging)
        if len(produced) != expected:
            raise CorruptOrUnsupportedMedia(
                f"Expected {expected} frames from {duration:.2f}s at {rate} fps, decoded {len(produced)}"
            )
    except SubprocessError as exc:
        shutil.rmtree(staging, ignore_errors=True)
        raise CorruptOrUnsupportedMedia(f"ffmpeg could not decode {asset.path}: {exc.stderr.strip()}") from exc
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise

    target = scratch.frames_dir
    shutil.rmtree(target, ignore_errors=True)
    staging.rename(target)

    frames = tuple(
        Frame(index=i, path=str(target / p.name), timestamp=round((i - 1) / rate, 3))
        for i, p in enumerate(produced, start=1)
    )
    logger.info("Sampled %d frame(s) at %.2f fps from %.2fs clip", len(frames), rate, duration)
    return FrameSet(directory=str(target), fps=rate, duration_seconds=duration, frames=frames)
