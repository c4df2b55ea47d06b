"""Pipeline tools (acquire, sample, analyze, status) on a FastMCP sub-server."""

from __future__ import annotations

import logging
from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..acquisition import acquire
from ..analyzer import analyze_motion
from ..errors import AcquisitionError, CorruptOrUnsupportedMedia, make_tool_error
from ..frames import sample_frames
from ..models.acquisition import classify_source
from ..models.session import SessionInfo
from ..sessions import session_store
from ..types import FrameRate, SessionId, SourceParam

logger = logging.getLogger(__name__)
pipeline_server = FastMCP("pipeline")


@pipeline_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=True,
    )
)
async def clone_start(source: SourceParam) -> dict:
    """Start a session by fetching the clip into a fresh scratch area.

    Direct media URLs are downloaded as-is; if the host answers with a tiny
    payload (usually an auth error page) the URL is retried once through a
    headless browser. Page URLs always go through the browser. Local paths
    are copied.

    Args:
        source: Media URL, page URL, or local path.

    Returns:
        Dict with session_id, scratch_dir and the acquired asset.
    """
    try:
        request = classify_source(source)
        session = session_store.create(source)
    except Exception as exc:
        return make_tool_error(exc)

    try:
        asset = await acquire(request, session.scratch)
    except Exception as exc:
        logger.warning("Acquisition failed for %s: %s", source, exc)
        session_store.abort(session.session_id)
        return make_tool_error(exc)

    session.asset = asset
    return SessionInfo(
        session_id=session.session_id,
        scratch_dir=str(session.scratch.root),
        asset=asset,
    ).model_dump(mode="json")


@pipeline_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def clone_sample_frames(
    session_id: SessionId,
    fps: FrameRate | None = None,
) -> dict:
    """Extract ground-truth stills from the session's clip (default 2 per second).

    Frames are written as frame_0001.png, frame_0002.png, ... in the
    session's frames directory. Review them to check timing and layout.
    A clip ffmpeg cannot decode ends the session.

    Args:
        session_id: Session from clone_start.
        fps: Sampling rate override.

    Returns:
        Dict with directory, fps, duration_seconds and the ordered frames.
    """
    try:
        session = session_store.require(session_id)
        if session.asset is None:
            raise AcquisitionError("Session has no acquired clip")
        frames = await sample_frames(session.asset, session.scratch, fps=fps)
    except CorruptOrUnsupportedMedia as exc:
        session_store.abort(session_id)
        return make_tool_error(exc)
    except Exception as exc:
        return make_tool_error(exc)

    session.frames = frames
    return frames.model_dump(mode="json")


@pipeline_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=True,
    )
)
async def clone_analyze(
    session_id: SessionId,
    include_frames: Annotated[bool, Field(
        description="Also attach sampled frames (up to MOTION_ANALYSIS_MAX_FRAMES)",
    )] = False,
) -> dict:
    """Ask Gemini for a structured description of the clip's animation.

    The clip is embedded in the request, so it must be small. Overloaded
    responses are retried up to 3 times, 5 seconds apart; anything else
    fails at once. On failure the session stays usable: build the component
    from the sampled frames instead.

    Args:
        session_id: Session from clone_start.
        include_frames: Attach sampled stills alongside the video.

    Returns:
        Dict with text, sections (layout, elements, sequence, timing,
        trigger, final_state), model, attempts and path.
    """
    try:
        session = session_store.require(session_id)
        if session.asset is None:
            raise AcquisitionError("Session has no acquired clip")
        spec = await analyze_motion(
            session.asset,
            session.frames,
            output_path=session.scratch.analysis_path,
            include_frames=include_frames,
        )
    except Exception as exc:
        return make_tool_error(exc)

    session.analysis = spec
    return spec.model_dump(mode="json")


@pipeline_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def clone_status(session_id: SessionId) -> dict:
    """Show what a session has produced so far and where its loop stands."""
    try:
        session = session_store.require(session_id)
    except Exception as exc:
        return make_tool_error(exc)
    return session.status().model_dump(mode="json")
