"""N-back stimulus sequence generation.

A sequence holds exactly ``guaranteed_matches`` positions ``i >= n`` where
``seq[i] == seq[i - n]``. Every other eligible position is redrawn until it
does not match by accident, with a bounded number of retries per position.
"""

from __future__ import annotations

import logging
from typing import Protocol

from .cognitive_core import GenerationExhausted, InvalidParameters, StimulusSequence

logger = logging.getLogger(__name__)

MAX_RETRIES_PER_POSITION = 64


class RandomSource(Protocol):
    def randint(self, a: int, b: int) -> int: ...

    def sample(self, population: list[int], k: int) -> list[int]: ...


def validate_parameters(*, length: int, alphabet_size: int, guaranteed_matches: int, n: int) -> None:
    if length < 1:
        raise InvalidParameters("length must be >= 1")
    if alphabet_size < 2:
        raise InvalidParameters("alphabet_size must be >= 2")
    if n < 1:
        raise InvalidParameters("n must be >= 1")
    if n >= length:
        raise InvalidParameters("n must be < length")
    if guaranteed_matches < 0:
        raise InvalidParameters("guaranteed_matches must be >= 0")
    if guaranteed_matches > length - n:
        raise InvalidParameters(
            f"guaranteed_matches={guaranteed_matches} exceeds the {length - n} eligible positions"
        )


def match_positions(sequence: StimulusSequence, n: int) -> list[int]:
    """Indices ``i >= n`` whose symbol equals the one ``n`` steps back."""

    return [i for i in range(n, len(sequence)) if sequence[i] == sequence[i - n]]


class SequenceGenerator:
    """Deterministic generator; the same seeded source yields the same sequences."""

    def __init__(self, rng: RandomSource, *, max_retries: int = MAX_RETRIES_PER_POSITION) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self._rng = rng
        self._max_retries = int(max_retries)

    def generate(self, length: int, alphabet_size: int, guaranteed_matches: int, n: int) -> StimulusSequence:
        validate_parameters(
            length=length,
            alphabet_size=alphabet_size,
            guaranteed_matches=guaranteed_matches,
            n=n,
        )

        targets = set(self._rng.sample(list(range(n, length)), guaranteed_matches))

        seq: list[int] = []
        for i in range(length):
            if i in targets:
                seq.append(seq[i - n])
                continue
            if i < n:
                seq.append(self._rng.randint(1, alphabet_size))
                continue
            seq.append(self._draw_non_match(index=i, avoid=seq[i - n], alphabet_size=alphabet_size))

        result = tuple(seq)
        logger.debug("generated sequence n=%d targets=%s: %s", n, sorted(targets), result)
        return result

    def _draw_non_match(self, *, index: int, avoid: int, alphabet_size: int) -> int:
        # The first draw is not a retry.
        for _ in range(self._max_retries + 1):
            value = self._rng.randint(1, alphabet_size)
            if value != avoid:
                return value
        raise GenerationExhausted(index=index, retries=self._max_retries)


def generate_sequence(
    length: int,
    alphabet_size: int,
    guaranteed_matches: int,
    n: int,
    *,
    rng: RandomSource,
    max_retries: int = MAX_RETRIES_PER_POSITION,
) -> StimulusSequence:
    return SequenceGenerator(rng, max_retries=max_retries).generate(length, alphabet_size, guaranteed_matches, n)
