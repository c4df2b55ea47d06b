"""Shared type aliases for tool parameters."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field

# ── Literal enums ────────────────────────────────────────────────────────────

Rating = Literal["perfect", "minor_tweaks", "several_issues", "major_rework"]
AdjustmentTagName = Literal[
    "timing", "easing", "layout", "colors", "elements", "sequence", "trigger", "other",
]

# ── Annotated aliases ────────────────────────────────────────────────────────

SessionId = Annotated[str, Field(min_length=1, description="Session ID returned by clone_start")]
SourceParam = Annotated[str, Field(
    min_length=1,
    description="Direct media URL (.mp4/.webm/.mov/.gif), a page URL embedding the clip, "
    "or a local file path. Keep clips short (5-30s).",
)]
ComponentSource = Annotated[str, Field(
    min_length=1,
    description="Full source of the React component (default export) for this iteration",
)]
FrameRate = Annotated[float, Field(gt=0, le=30, description="Frames sampled per second")]
