from __future__ import annotations

import pytest

from nback_trainer.cognitive_core import MatchStatus, SessionPhase
from nback_trainer.evaluator import MatchEvaluator
from nback_trainer.state import SessionState


def _state(sequence: tuple[int, ...], *, n: int = 2, index: int = -1, score: int = 0) -> SessionState:
    state = SessionState(n=n, sequence=sequence, phase=SessionPhase.RUNNING)
    state.advance_to(index)
    state.score = score
    return state


def test_match_against_two_back_is_correct() -> None:
    state = _state((3, 5, 3, 5, 3), index=2)

    assert MatchEvaluator().evaluate(state) is MatchStatus.CORRECT
    assert state.score == 1
    assert state.correct_count == 1
    assert state.match_status is MatchStatus.CORRECT


def test_match_skips_the_middle_symbol() -> None:
    state = _state((3, 5, 7, 5, 3), index=3)

    assert MatchEvaluator().evaluate(state) is MatchStatus.CORRECT
    assert state.score == 1


def test_mismatch_is_incorrect_and_decrements_score() -> None:
    state = _state((3, 5, 7, 5, 3), index=2, score=2)

    assert MatchEvaluator().evaluate(state) is MatchStatus.INCORRECT
    assert state.score == 1
    assert state.correct_count == 0


def test_score_never_drops_below_zero() -> None:
    evaluator = MatchEvaluator()
    state = _state((1, 2, 3, 4, 5, 6, 7, 8))

    for index in range(2, 8):
        state.advance_to(index)
        assert evaluator.evaluate(state) is MatchStatus.INCORRECT
        assert state.score == 0


@pytest.mark.parametrize("sequence", [(4, 4, 4, 4), (1, 2, 1, 2), (9, 8, 7, 6)])
def test_no_history_before_n_returns_none_without_side_effects(sequence: tuple[int, ...]) -> None:
    evaluator = MatchEvaluator()
    state = _state(sequence, score=3)

    for index in (-1, 0, 1):
        state.advance_to(index)
        assert evaluator.evaluate(state) is MatchStatus.NONE
        assert state.score == 3
        assert state.correct_count == 0
        assert state.judged is False
        assert state.match_status is MatchStatus.NONE


def test_second_judgment_at_same_index_is_idempotent() -> None:
    evaluator = MatchEvaluator()
    state = _state((3, 5, 3, 5, 3), index=2)

    first = evaluator.evaluate(state)
    second = evaluator.evaluate(state)

    assert first is second is MatchStatus.CORRECT
    assert state.score == 1
    assert state.correct_count == 1


def test_repeat_after_flash_cleared_returns_first_outcome_and_leaves_status_cleared() -> None:
    evaluator = MatchEvaluator()
    state = _state((3, 5, 7, 5, 3), index=2, score=1)

    assert evaluator.evaluate(state) is MatchStatus.INCORRECT
    state.clear_match_status()

    assert evaluator.evaluate(state) is MatchStatus.INCORRECT
    assert state.score == 0
    assert state.match_status is MatchStatus.NONE


def test_moving_to_a_new_index_allows_a_new_judgment() -> None:
    evaluator = MatchEvaluator()
    state = _state((3, 5, 3, 5, 3), index=2)

    evaluator.evaluate(state)
    state.advance_to(3)

    assert state.judged is False
    assert evaluator.evaluate(state) is MatchStatus.CORRECT
    assert state.score == 2
    assert state.correct_count == 2
