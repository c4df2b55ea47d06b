"""Infrastructure tools — runtime configuration on a FastMCP sub-server."""

from __future__ import annotations

from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..config import get_config, update_config
from ..errors import make_tool_error
from ..sessions import session_store
from ..types import FrameRate

infra_server = FastMCP("infra")
_SENSITIVE_CONFIG_FIELDS = {"gemini_api_key"}


def _redacted_config() -> dict:
    """Return runtime config with secret-bearing fields removed."""
    return get_config().model_dump(exclude=_SENSITIVE_CONFIG_FIELDS)


@infra_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def infra_configure(
    model: Annotated[str | None, Field(description="Gemini model ID override")] = None,
    temperature: Annotated[float | None, Field(ge=0.0, le=2.0, description="Sampling temperature")] = None,
    frame_rate: FrameRate | None = None,
    include_frames_max: Annotated[int | None, Field(
        ge=0, le=120, description="Max sampled frames attached to an analysis request",
    )] = None,
) -> dict:
    """Reconfigure the model, temperature and sampling rate at runtime.

    Changes take effect immediately for all subsequent tool calls.

    Returns:
        Dict with current_config (secrets redacted) and active_sessions.
    """
    try:
        overrides: dict[str, object] = {
            "default_model": model,
            "default_temperature": temperature,
            "frame_rate": frame_rate,
            "analysis_max_frames": include_frames_max,
        }
        if any(v is not None for v in overrides.values()):
            update_config(**overrides)
        return {
            "current_config": _redacted_config(),
            "active_sessions": session_store.count,
        }
    except Exception as exc:
        return make_tool_error(exc)
