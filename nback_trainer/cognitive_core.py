from __future__ import annotations

import random
from collections.abc import Sequence
from enum import StrEnum

# Stimuli are small positive integers; a sequence is immutable once generated.
Stimulus = int
StimulusSequence = tuple[Stimulus, ...]

GRID_SIDE = 3
GRID_CELLS = GRID_SIDE * GRID_SIDE
LETTER_COUNT = 26
INVALID_LETTER = "Invalid"


class GameMode(StrEnum):
    VISUAL = "visual"
    AUDIO = "audio"
    AUDIO_VISUAL = "audio_visual"


class MatchStatus(StrEnum):
    NONE = "none"
    CORRECT = "correct"
    INCORRECT = "incorrect"


class SessionPhase(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELED = "canceled"


class InvalidParameters(ValueError):
    """Session configuration violates the generator or clock constraints."""


class GenerationExhausted(RuntimeError):
    """The generator ran out of retries before a valid sequence was built."""

    def __init__(self, *, index: int, retries: int) -> None:
        super().__init__(f"no non-matching symbol found for position {index} after {retries} retries")
        self.index = index
        self.retries = retries


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def sample(self, population: Sequence[int], k: int) -> list[int]:
        return self._rng.sample(list(population), k)


def letter_for_stimulus(stimulus: Stimulus) -> str:
    """Map 1 -> "A", 2 -> "B", ... for spoken cues."""

    if 1 <= stimulus <= LETTER_COUNT:
        return chr(ord("A") + stimulus - 1)
    return INVALID_LETTER
