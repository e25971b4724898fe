from __future__ import annotations

import logging

from .cognitive_core import MatchStatus
from .state import SessionState

logger = logging.getLogger(__name__)


class MatchEvaluator:
    """Scores a user's "this matches N back" judgment against the live stimulus.

    - Before index ``n`` there is no history: NONE, nothing recorded.
    - First judgment at an index: CORRECT (+1 score, +1 correct count) or
      INCORRECT (-1 score, floored at 0).
    - Further judgments at the same index return the first outcome unchanged.

    The evaluator never clears ``match_status``; the trial clock and the
    engine's flash timer do.
    """

    def evaluate(self, state: SessionState) -> MatchStatus:
        index = state.live_index
        if index < state.n or index >= len(state.sequence):
            return MatchStatus.NONE

        if state.judged:
            return state.judged_status

        current = state.sequence[index]
        earlier = state.sequence[index - state.n]
        if current == earlier:
            status = MatchStatus.CORRECT
            state.score += 1
            state.correct_count += 1
        else:
            status = MatchStatus.INCORRECT
            if state.score > 0:
                state.score -= 1

        state.record_judgment(status)
        logger.debug(
            "judged index=%d (%d vs %d) -> %s, score=%d",
            index,
            current,
            earlier,
            status.value,
            state.score,
        )
        return status
