"""Iteration loop state and the events that drive it."""

from __future__ import annotations

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class Phase(str, Enum):
    GENERATED = "generated"
    AWAITING_DETAIL = "awaiting_detail"
    REVISING = "revising"
    APPROVED = "approved"
    ABORTED = "aborted"


TERMINAL_PHASES = frozenset({Phase.APPROVED, Phase.ABORTED})


class MatchQuality(str, Enum):
    UNSET = "unset"
    PERFECT = "perfect"
    MINOR_TWEAKS = "minor_tweaks"
    SEVERAL_ISSUES = "several_issues"
    MAJOR_REWORK = "major_rework"


class AdjustmentTag(str, Enum):
    TIMING = "timing"
    EASING = "easing"
    LAYOUT = "layout"
    COLORS = "colors"
    ELEMENTS = "elements"
    SEQUENCE = "sequence"
    TRIGGER = "trigger"
    OTHER = "other"


class IterationState(BaseModel):
    """Snapshot of the approval loop. Replaced, never mutated in place."""

    model_config = ConfigDict(frozen=True)

    phase: Phase = Phase.GENERATED
    iteration_number: int = Field(default=1, ge=1)
    component_source: str = ""
    match_quality: MatchQuality = MatchQuality.UNSET
    adjustment_tags: frozenset[AdjustmentTag] = frozenset()
    detail: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES


class Rate(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["rate"] = "rate"
    quality: MatchQuality


class Detail(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["detail"] = "detail"
    tags: frozenset[AdjustmentTag] = frozenset()
    text: str = ""


class Revised(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["revised"] = "revised"
    source: str = Field(min_length=1)


class Cancel(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["cancel"] = "cancel"


IterationEvent = Union[Rate, Detail, Revised, Cancel]
