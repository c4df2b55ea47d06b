"""Tool-facing session payloads."""

from __future__ import annotations

from pydantic import BaseModel, Field

from .acquisition import VideoAsset
from .iteration import IterationState


class SessionInfo(BaseModel):
    """Output schema for clone_start."""

    session_id: str
    status: str = "acquired"
    scratch_dir: str
    asset: VideoAsset


class SessionStatus(BaseModel):
    """Output schema for clone_status."""

    session_id: str
    scratch_dir: str
    asset: VideoAsset | None = None
    frame_count: int = 0
    has_analysis: bool = False
    iteration: IterationState | None = None
    scratch_files: list[str] = Field(default_factory=list)

