"""Tests for the approval loop state machine."""

from __future__ import annotations

import pytest

from motion_clone_mcp.errors import InvalidTransition
from motion_clone_mcp.iteration import initial_state, is_cancel_utterance, transition
from motion_clone_mcp.models.iteration import (
    AdjustmentTag,
    Cancel,
    Detail,
    MatchQuality,
    Phase,
    Rate,
    Revised,
)

NON_PERFECT = [MatchQuality.MINOR_TWEAKS, MatchQuality.SEVERAL_ISSUES, MatchQuality.MAJOR_REWORK]


def _revise_once(state, source="export default () => null;"):
    state = transition(state, Rate(quality=MatchQuality.MINOR_TWEAKS))
    state = transition(state, Detail(tags=frozenset({AdjustmentTag.TIMING})))
    return transition(state, Revised(source=source))


class TestInitialState:
    def test_starts_generated_at_iteration_one(self):
        state = initial_state("export default () => <div />;")
        assert state.phase is Phase.GENERATED
        assert state.iteration_number == 1
        assert state.match_quality is MatchQuality.UNSET
        assert state.adjustment_tags == frozenset()

    def test_empty_source_rejected(self):
        with pytest.raises(ValueError):
            initial_state("   ")


class TestRating:
    def test_perfect_goes_straight_to_approved(self):
        state = transition(initial_state("v1"), Rate(quality=MatchQuality.PERFECT))
        assert state.phase is Phase.APPROVED
        assert state.match_quality is MatchQuality.PERFECT
        assert state.is_terminal

    @pytest.mark.parametrize("quality", NON_PERFECT)
    def test_other_ratings_await_detail(self, quality):
        state = transition(initial_state("v1"), Rate(quality=quality))
        assert state.phase is Phase.AWAITING_DETAIL
        assert state.match_quality is quality

    @pytest.mark.parametrize("quality", NON_PERFECT)
    def test_revising_unreachable_without_detail(self, quality):
        state = transition(initial_state("v1"), Rate(quality=quality))
        with pytest.raises(InvalidTransition):
            transition(state, Revised(source="v2"))

    def test_unset_rating_rejected(self):
        with pytest.raises(InvalidTransition):
            transition(initial_state("v1"), Rate(quality=MatchQuality.UNSET))


class TestDetailAndRevision:
    def test_detail_records_tags_and_text(self):
        state = transition(initial_state("v1"), Rate(quality=MatchQuality.SEVERAL_ISSUES))
        state = transition(state, Detail(
            tags=frozenset({AdjustmentTag.EASING, AdjustmentTag.COLORS}),
            text="  slower ease-out on the card  ",
        ))
        assert state.phase is Phase.REVISING
        assert state.adjustment_tags == {AdjustmentTag.EASING, AdjustmentTag.COLORS}
        assert state.detail == "slower ease-out on the card"

    def test_detail_needs_tags_or_text(self):
        state = transition(initial_state("v1"), Rate(quality=MatchQuality.MINOR_TWEAKS))
        with pytest.raises(InvalidTransition):
            transition(state, Detail())

    def test_text_only_detail_accepted(self):
        state = transition(initial_state("v1"), Rate(quality=MatchQuality.MINOR_TWEAKS))
        state = transition(state, Detail(text="bigger bounce"))
        assert state.phase is Phase.REVISING

    def test_revision_returns_to_generated_with_next_number(self):
        state = _revise_once(initial_state("v1"), source="v2")
        assert state.phase is Phase.GENERATED
        assert state.iteration_number == 2
        assert state.component_source == "v2"
        assert state.match_quality is MatchQuality.UNSET
        assert state.adjustment_tags == frozenset()

    def test_iteration_number_increases_by_exactly_one_per_cycle(self):
        state = initial_state("v1")
        seen = [state.iteration_number]
        for n in range(2, 7):
            state = _revise_once(state, source=f"v{n}")
            seen.append(state.iteration_number)
        assert seen == [1, 2, 3, 4, 5, 6]

    def test_rating_and_detail_do_not_change_iteration_number(self):
        state = transition(initial_state("v1"), Rate(quality=MatchQuality.MAJOR_REWORK))
        assert state.iteration_number == 1
        state = transition(state, Detail(tags=frozenset({AdjustmentTag.LAYOUT})))
        assert state.iteration_number == 1

    def test_transition_does_not_mutate_input(self):
        before = initial_state("v1")
        transition(before, Rate(quality=MatchQuality.MINOR_TWEAKS))
        assert before.phase is Phase.GENERATED


class TestCancel:
    @pytest.mark.parametrize("steps", [0, 1, 2])
    def test_cancel_from_any_non_terminal_phase(self, steps):
        state = initial_state("v1")
        events = [
            Rate(quality=MatchQuality.MINOR_TWEAKS),
            Detail(tags=frozenset({AdjustmentTag.OTHER})),
        ]
        for event in events[:steps]:
            state = transition(state, event)

        aborted = transition(state, Cancel())
        assert aborted.phase is Phase.ABORTED
        assert aborted.is_terminal

    def test_approved_and_aborted_are_final(self):
        approved = transition(initial_state("v1"), Rate(quality=MatchQuality.PERFECT))
        with pytest.raises(InvalidTransition):
            transition(approved, Cancel())

        aborted = transition(initial_state("v1"), Cancel())
        with pytest.raises(InvalidTransition):
            transition(aborted, Rate(quality=MatchQuality.PERFECT))


class TestCancelUtterance:
    @pytest.mark.parametrize("text", ["cancel", "Abort", " stop ", "STOP!", "never mind", "quit."])
    def test_recognised(self, text):
        assert is_cancel_utterance(text) is True

    @pytest.mark.parametrize("text", ["", "looks good", "stop the bounce earlier", "perfect"])
    def test_not_recognised(self, text):
        assert is_cancel_utterance(text) is False
