"""Per-mode cue handlers and the output sink boundary.

Every mode shares the same tick loop; they differ only in what the cue for a
tick carries. The host implements ``StimulusSink`` to draw or speak it.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from .cognitive_core import GameMode, Stimulus, letter_for_stimulus


@dataclass(frozen=True, slots=True)
class StimulusCue:
    index: int
    stimulus: Stimulus
    position: int | None = None  # 0-based grid cell
    letter: str | None = None  # spoken letter


class StimulusSink(Protocol):
    def present_stimulus(self, cue: StimulusCue, mode: GameMode) -> None: ...


def _visual_cue(index: int, stimulus: Stimulus) -> StimulusCue:
    return StimulusCue(index=index, stimulus=stimulus, position=stimulus - 1)


def _audio_cue(index: int, stimulus: Stimulus) -> StimulusCue:
    return StimulusCue(index=index, stimulus=stimulus, letter=letter_for_stimulus(stimulus))


def _audio_visual_cue(index: int, stimulus: Stimulus) -> StimulusCue:
    return StimulusCue(
        index=index,
        stimulus=stimulus,
        position=stimulus - 1,
        letter=letter_for_stimulus(stimulus),
    )


CUE_HANDLERS: dict[GameMode, Callable[[int, Stimulus], StimulusCue]] = {
    GameMode.VISUAL: _visual_cue,
    GameMode.AUDIO: _audio_cue,
    GameMode.AUDIO_VISUAL: _audio_visual_cue,
}


def build_cue(mode: GameMode, *, index: int, stimulus: Stimulus) -> StimulusCue:
    return CUE_HANDLERS[mode](index, stimulus)
