"""Approval loop tools on a FastMCP sub-server.

Flow: clone_begin_iteration → clone_feedback(rating) → [clone_detail →
clone_revise → clone_feedback ...] until "perfect" or a cancel.
"""

from __future__ import annotations

from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..errors import make_tool_error
from ..iteration import is_cancel_utterance
from ..models.iteration import AdjustmentTag, Cancel, Detail, MatchQuality, Phase, Rate, Revised
from ..sessions import session_store
from ..types import AdjustmentTagName, ComponentSource, Rating, SessionId

iterate_server = FastMCP("iterate")

_NEXT_STEP = {
    Phase.GENERATED: "Preview the component and rate it with clone_feedback",
    Phase.AWAITING_DETAIL: "Collect what to change and send it with clone_detail",
    Phase.REVISING: "Apply the requested changes and submit them with clone_revise",
    Phase.APPROVED: "Approved; export the component from the scratch preview directory",
    Phase.ABORTED: "Session cancelled and its scratch files deleted",
}


def _state_payload(session_id: str, state) -> dict:
    result = {"session_id": session_id, **state.model_dump(mode="json")}
    result["next_step"] = _NEXT_STEP[state.phase]
    session = session_store.get(session_id)
    if session is not None:
        result["component_path"] = str(session.scratch.component_path)
        result["preview_dir"] = str(session.scratch.preview_dir)
    return result


@iterate_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=False,
    )
)
async def clone_begin_iteration(
    session_id: SessionId,
    component_source: ComponentSource,
) -> dict:
    """Save the first component draft and the preview shell; enters iteration 1.

    Run ``npm install && npm run dev`` once in the returned preview_dir;
    later revisions hot-reload.
    """
    try:
        state = session_store.begin_iteration(session_id, component_source)
        return _state_payload(session_id, state)
    except Exception as exc:
        return make_tool_error(exc)


@iterate_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=False,
        openWorldHint=False,
    )
)
async def clone_feedback(
    session_id: SessionId,
    rating: Rating | None = None,
    message: Annotated[str | None, Field(
        description="The user's reply verbatim; 'cancel', 'abort' or 'stop' ends the session",
    )] = None,
) -> dict:
    """Record how closely the preview matches the clip.

    "perfect" approves the component. Any other rating asks for details
    next. A cancel message aborts the session and deletes its scratch files.

    Args:
        session_id: Session from clone_start.
        rating: perfect, minor_tweaks, several_issues, or major_rework.
        message: Free-text reply, checked for a cancel request.

    Returns:
        Dict with the new iteration state and the next step.
    """
    try:
        if message is not None and is_cancel_utterance(message):
            state = session_store.apply(session_id, Cancel())
        elif rating is None:
            raise ValueError("Provide a rating or a cancel message")
        else:
            state = session_store.apply(session_id, Rate(quality=MatchQuality(rating)))
        return _state_payload(session_id, state)
    except Exception as exc:
        return make_tool_error(exc)


@iterate_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=False,
    )
)
async def clone_detail(
    session_id: SessionId,
    tags: Annotated[list[AdjustmentTagName] | None, Field(
        description="What needs adjusting",
    )] = None,
    detail: Annotated[str, Field(description="Specific changes the user asked for")] = "",
) -> dict:
    """Record what to change after a non-perfect rating; moves to revising."""
    try:
        event = Detail(tags=frozenset(AdjustmentTag(t) for t in tags or ()), text=detail)
        state = session_store.apply(session_id, event)
        return _state_payload(session_id, state)
    except Exception as exc:
        return make_tool_error(exc)


@iterate_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=False,
    )
)
async def clone_revise(
    session_id: SessionId,
    component_source: ComponentSource,
) -> dict:
    """Submit the revised component; starts the next iteration awaiting a rating."""
    try:
        state = session_store.apply(session_id, Revised(source=component_source))
        return _state_payload(session_id, state)
    except Exception as exc:
        return make_tool_error(exc)


@iterate_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=False,
        openWorldHint=False,
    )
)
async def clone_abort(session_id: SessionId) -> dict:
    """Cancel the session from any point and delete every scratch file."""
    try:
        state = session_store.abort(session_id)
        return _state_payload(session_id, state)
    except Exception as exc:
        return make_tool_error(exc)
