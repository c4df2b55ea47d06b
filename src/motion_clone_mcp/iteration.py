"""Approval loop: generate → preview → feedback → revise, as a pure state machine.

``transition`` never touches the filesystem or the user. Side effects
(writing the component, deleting the scratch area) belong to the session
layer, which reacts to the phase it gets back.
"""

from __future__ import annotations

from .errors import InvalidTransition
from .models.iteration import (
    Cancel,
    Detail,
    IterationEvent,
    IterationState,
    MatchQuality,
    Phase,
    Rate,
    Revised,
)

CANCEL_UTTERANCES = frozenset({
    "cancel",
    "abort",
    "stop",
    "quit",
    "exit",
    "nevermind",
    "never mind",
})


def is_cancel_utterance(text: str) -> bool:
    """True when the user's free-text reply is a request to abandon the session."""
    return text.strip().strip(".!").lower() in CANCEL_UTTERANCES


def initial_state(component_source: str) -> IterationState:
    """First draft exists: iteration 1, waiting for a rating."""
    if not component_source.strip():
        raise ValueError("component_source must not be empty")
    return IterationState(component_source=component_source)


def transition(state: IterationState, event: IterationEvent) -> IterationState:
    """Apply one user event and return the next state.

    Raises:
        InvalidTransition: When the event does not apply to the current phase.
    """
    if state.is_terminal:
        raise InvalidTransition(
            f"Session already {state.phase.value}; no further events accepted"
        )

    if isinstance(event, Cancel):
        return state.model_copy(update={"phase": Phase.ABORTED})

    if state.phase is Phase.GENERATED and isinstance(event, Rate):
        if event.quality is MatchQuality.UNSET:
            raise InvalidTransition("Rating must be one of perfect, minor_tweaks, several_issues, major_rework")
        next_phase = Phase.APPROVED if event.quality is MatchQuality.PERFECT else Phase.AWAITING_DETAIL
        return state.model_copy(update={"phase": next_phase, "match_quality": event.quality})

    if state.phase is Phase.AWAITING_DETAIL and isinstance(event, Detail):
        if not event.tags and not event.text.strip():
            raise InvalidTransition("Describe what to change: pick adjustment tags or add detail text")
        return state.model_copy(update={
            "phase": Phase.REVISING,
            "adjustment_tags": event.tags,
            "detail": event.text.strip(),
        })

    if state.phase is Phase.REVISING and isinstance(event, Revised):
        return IterationState(
            phase=Phase.GENERATED,
            iteration_number=state.iteration_number + 1,
            component_source=event.source,
        )

    raise InvalidTransition(
        f"Cannot apply '{event.type}' while {state.phase.value}"
    )
