from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass

from .cognitive_core import GRID_CELLS, LETTER_COUNT, GameMode, InvalidParameters

ENV_PREFIX = "NBACK_"


@dataclass(frozen=True, slots=True)
class GameConfig:
    # Defaults follow the classic phone build: 2-back over ten events, nine
    # symbols, roughly 30% matches and a two-second cadence.
    n: int = 2
    sequence_length: int = 10
    alphabet_size: int = 9
    guaranteed_matches: int = 3
    interval_ms: int = 2000
    mode: GameMode = GameMode.VISUAL

    # How long a CORRECT/INCORRECT flash stays up; 0 leaves clearing to the host.
    flash_ms: int = 500

    @property
    def interval_s(self) -> float:
        return self.interval_ms / 1000.0

    @property
    def flash_s(self) -> float:
        return self.flash_ms / 1000.0

    def validate(self) -> None:
        if self.sequence_length < 1:
            raise InvalidParameters("sequence_length must be >= 1")
        if self.alphabet_size < 2:
            raise InvalidParameters("alphabet_size must be >= 2")
        if self.n < 1:
            raise InvalidParameters("n must be >= 1")
        if self.n >= self.sequence_length:
            raise InvalidParameters("n must be < sequence_length")
        if self.guaranteed_matches < 0:
            raise InvalidParameters("guaranteed_matches must be >= 0")
        if self.guaranteed_matches > self.sequence_length - self.n:
            raise InvalidParameters("guaranteed_matches must be <= sequence_length - n")
        if self.interval_ms <= 0:
            raise InvalidParameters("interval_ms must be > 0")
        if self.flash_ms < 0:
            raise InvalidParameters("flash_ms must be >= 0")
        if not isinstance(self.mode, GameMode):
            raise InvalidParameters(f"unknown mode: {self.mode!r}")
        # Every symbol needs its own grid cell or its own spoken letter.
        if self.mode is not GameMode.AUDIO and self.alphabet_size > GRID_CELLS:
            raise InvalidParameters(f"alphabet_size must be <= {GRID_CELLS} for {self.mode.value} mode")
        if self.mode is not GameMode.VISUAL and self.alphabet_size > LETTER_COUNT:
            raise InvalidParameters(f"alphabet_size must be <= {LETTER_COUNT} for {self.mode.value} mode")

    def with_mode(self, mode: GameMode) -> GameConfig:
        return dataclasses.replace(self, mode=mode)

    def with_match_rate(self, rate: float) -> GameConfig:
        """Derive guaranteed_matches from a fraction of the eligible positions."""

        if not (0.0 <= rate <= 1.0):
            raise InvalidParameters("match rate must be in [0.0, 1.0]")
        eligible = max(0, self.sequence_length - self.n)
        return dataclasses.replace(self, guaranteed_matches=int(round(rate * eligible)))


_INT_FIELDS: dict[str, str] = {
    "N": "n",
    "LENGTH": "sequence_length",
    "ALPHABET": "alphabet_size",
    "MATCHES": "guaranteed_matches",
    "INTERVAL_MS": "interval_ms",
    "FLASH_MS": "flash_ms",
}


def parse_mode(raw: str) -> GameMode:
    token = str(raw).strip().lower().replace("-", "_").replace("+", "_")
    if token in ("audiovisual", "av", "dual"):
        token = GameMode.AUDIO_VISUAL.value
    try:
        return GameMode(token)
    except ValueError:
        raise InvalidParameters(f"unknown mode: {raw!r}") from None


def load_config(environ: Mapping[str, str], *, base: GameConfig | None = None) -> GameConfig:
    """Apply NBACK_* environment overrides on top of ``base`` and validate."""

    cfg = base or GameConfig()
    overrides: dict[str, object] = {}
    for suffix, field in _INT_FIELDS.items():
        raw = environ.get(ENV_PREFIX + suffix, "").strip()
        if raw == "":
            continue
        try:
            overrides[field] = int(raw)
        except ValueError:
            raise InvalidParameters(f"{ENV_PREFIX}{suffix} must be an integer, got {raw!r}") from None

    raw_mode = environ.get(ENV_PREFIX + "MODE", "").strip()
    if raw_mode != "":
        overrides["mode"] = parse_mode(raw_mode)

    cfg = dataclasses.replace(cfg, **overrides)
    cfg.validate()
    return cfg
