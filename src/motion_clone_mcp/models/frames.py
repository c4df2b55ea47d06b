"""Frame sampling and motion analysis output models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

ANALYSIS_SECTIONS: tuple[str, ...] = (
    "layout",
    "elements",
    "sequence",
    "timing",
    "trigger",
    "final_state",
)


class Frame(BaseModel):
    """One sampled still, numbered from 1."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=1)
    path: str
    timestamp: float = Field(ge=0.0, description="Seconds from clip start")


class FrameSet(BaseModel):
    """Chronological stills sampled at a fixed rate."""

    model_config = ConfigDict(frozen=True)

    directory: str
    fps: float
    duration_seconds: float
    frames: tuple[Frame, ...] = ()

    @property
    def count(self) -> int:
        return len(self.frames)


class AnalysisSpec(BaseModel):
    """Gemini's description of the animation, kept verbatim plus split by heading."""

    model_config = ConfigDict(frozen=True)

    text: str
    sections: dict[str, str] = Field(default_factory=dict)
    model: str = ""
    attempts: int = 1
    path: str = ""
