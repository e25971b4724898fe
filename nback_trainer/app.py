"""Pygame UI shell for the N-back trainer.

Home menu picks a mode (Visual, Audio, Audio + Visual) and starts a session;
the game screen draws the 3x3 grid, speaks letters and forwards "match"
presses to the engine.

Deterministic timing/scoring/RNG/state lives in nback_trainer/* (core modules).
"""

from __future__ import annotations

import logging
import os
import random
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import pygame

from .clock import RealClock
from .cognitive_core import GRID_CELLS, GRID_SIDE, GameMode, GenerationExhausted, InvalidParameters, MatchStatus, SessionPhase
from .config import GameConfig, load_config
from .persistence import SqliteHighScoreStore, default_db_path, record_session
from .presentation import StimulusCue
from .results import session_result_from_engine
from .session import NBackEngine, build_nback_engine
from .speech import LetterSpeaker
from .state import SessionSnapshot

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"
WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

MODE_LABELS = {
    GameMode.VISUAL: "Visual",
    GameMode.AUDIO: "Audio",
    GameMode.AUDIO_VISUAL: "Audio + Visual",
}


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the last/root screen; root handles its own quit/back behavior.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class MenuScreen:
    def __init__(
        self,
        app: App,
        title: str,
        items: list[MenuItem],
        *,
        is_root: bool = False,
        status: Callable[[], list[str]] | None = None,
    ) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._status = status
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN:
            self._handle_key(event.key)
            return

        if event.type == pygame.JOYHATMOTION:
            _, y = event.value
            if y == 1:
                self._move(-1)
            elif y == -1:
                self._move(1)
            return

        if event.type == pygame.JOYBUTTONDOWN:
            # Common mapping: 0 = select, 1 = back/cancel.
            if event.button == 0:
                self._activate()
            elif event.button == 1:
                self._back()

    def _handle_key(self, key: int) -> None:
        if key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._activate()
        elif key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._back()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def _activate(self) -> None:
        if not self._items:
            return
        self._items[self._selected].action()

    def _back(self) -> None:
        if self._is_root:
            self._app.quit()
        else:
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        text_main = (238, 245, 255)
        text_muted = (186, 200, 224)

        surface.fill((3, 9, 78))
        title = self._title_font.render(self._title, True, text_main)
        surface.blit(title, title.get_rect(midtop=(w // 2, max(20, h // 14))))

        y = max(80, h // 5)
        for line in self._status() if self._status is not None else []:
            text = self._hint_font.render(line, True, text_muted)
            surface.blit(text, text.get_rect(midtop=(w // 2, y)))
            y += text.get_height() + 6

        row_h = 44
        y += 16
        for idx, item in enumerate(self._items):
            row = pygame.Rect(w // 2 - 180, y, 360, row_h - 6)
            selected = idx == self._selected
            pygame.draw.rect(surface, (244, 248, 255) if selected else (9, 20, 106), row)
            pygame.draw.rect(surface, (120, 142, 196), row, 2 if selected else 1)
            color = (14, 26, 74) if selected else text_main
            label = self._item_font.render(item.label, True, color)
            surface.blit(label, label.get_rect(center=row.center))
            y += row_h

        footer = "Enter/Space: Select  |  Esc/Backspace: Back  |  D-pad + Button0/1"
        foot = self._hint_font.render(footer, True, text_muted)
        surface.blit(foot, foot.get_rect(midbottom=(w // 2, h - 10)))


class _SpeakingSink:
    """Output sink: visual cues are drawn from snapshots, letters are spoken."""

    def __init__(self, speaker: LetterSpeaker) -> None:
        self._speaker = speaker

    def present_stimulus(self, cue: StimulusCue, mode: GameMode) -> None:
        if cue.letter is not None:
            self._speaker.speak(cue.letter)


class GameScreen:
    _flash_colors = {
        MatchStatus.CORRECT: (46, 196, 92),
        MatchStatus.INCORRECT: (214, 58, 58),
        MatchStatus.NONE: (240, 206, 40),
    }

    def __init__(
        self,
        app: App,
        *,
        engine: NBackEngine,
        speaker: LetterSpeaker,
        db_path: Path | None,
    ) -> None:
        self._app = app
        self._engine = engine
        self._speaker = speaker
        self._db_path = db_path
        self._recorded = False
        self._small_font = pygame.font.Font(None, 28)
        self._big_font = pygame.font.Font(None, 120)
        self._unsubscribe = engine.subscribe(self._on_change)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN:
            if event.key in (pygame.K_SPACE, pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_m):
                self._engine.check_match()
            elif event.key == pygame.K_r:
                self._restart()
            elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
                self._leave()
            return

        if event.type == pygame.JOYBUTTONDOWN:
            if event.button == 0:
                self._engine.check_match()
            elif event.button == 1:
                self._leave()

    def render(self, surface: pygame.Surface) -> None:
        self._engine.update()
        self._speaker.update()
        snap = self._engine.snapshot()

        w, h = surface.get_size()
        text_main = (236, 244, 255)
        text_muted = (184, 198, 224)
        surface.fill((2, 8, 114))

        header = (
            f"{MODE_LABELS[snap.mode]}  |  {snap.n}-back  |  Score {snap.score}  |  "
            f"Correct {snap.correct_count}  |  High score {snap.high_score}"
        )
        surface.blit(self._small_font.render(header, True, text_main), (16, 12))

        progress = f"Event {max(0, snap.live_index + 1)}/{snap.sequence_length}"
        surface.blit(self._small_font.render(progress, True, text_muted), (16, 40))

        cue = snap.cue if snap.phase is SessionPhase.RUNNING else None
        board = min(w, h) - 140
        cell = board // GRID_SIDE
        left = (w - cell * GRID_SIDE) // 2
        top = 80
        for position in range(GRID_CELLS):
            row, col = divmod(position, GRID_SIDE)
            rect = pygame.Rect(left + col * cell + 6, top + row * cell + 6, cell - 12, cell - 12)
            color = (90, 96, 120)
            if cue is not None and cue.position == position:
                color = self._flash_colors[snap.match_status]
            pygame.draw.ellipse(surface, color, rect)

        # Audio-only cues are heard, not shown; the label only carries the match flash.
        if cue is not None and cue.position is None:
            label = self._big_font.render("LISTEN", True, self._flash_colors[snap.match_status])
            surface.blit(label, label.get_rect(center=(w // 2, top + (cell * GRID_SIDE) // 2)))

        surface.blit(self._small_font.render(self._footer(snap), True, text_muted), (16, h - 34))

    def _footer(self, snap: SessionSnapshot) -> str:
        if snap.phase is SessionPhase.COMPLETED:
            return f"Finished with {snap.score} points. R: play again  |  Esc: back"
        if snap.phase is SessionPhase.CANCELED:
            return "Canceled. R: play again  |  Esc: back"
        return "Space/Enter: match  |  R: restart  |  Esc: quit session"

    def _restart(self) -> None:
        self._recorded = False
        self._engine.start_game()

    def _leave(self) -> None:
        self._engine.cancel()
        self._speaker.stop()
        self._unsubscribe()
        self._app.pop()

    def _on_change(self, snap: SessionSnapshot) -> None:
        if snap.phase is not SessionPhase.COMPLETED or self._recorded:
            return
        self._recorded = True
        if self._db_path is None:
            return
        result = session_result_from_engine(self._engine)
        session_id = record_session(db_path=self._db_path, result=result, app_version=APP_VERSION)
        logger.debug("recorded session %d", session_id)


def _init_joysticks() -> None:
    # Safe on platforms with no joystick support.
    try:
        count = pygame.joystick.get_count()
    except pygame.error:
        return

    for i in range(count):
        try:
            pygame.joystick.Joystick(i).init()
        except pygame.error:
            continue


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def _configure_logging() -> None:
    level = os.environ.get("NBACK_LOG_LEVEL", "WARNING").strip().upper() or "WARNING"
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    db_path: Path | None = None,
) -> int:
    _configure_logging()
    pygame.init()
    _init_joysticks()

    pygame.display.set_caption("N-Back Trainer")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)

    store_path = db_path if db_path is not None else default_db_path()
    high_scores = SqliteHighScoreStore(store_path)
    speaker = LetterSpeaker()
    real_clock = RealClock()
    last_error: list[str] = []

    try:
        base_config = load_config(os.environ)
    except InvalidParameters as exc:
        last_error.append(f"Configuration error: {exc}. Using defaults.")
        base_config = GameConfig()

    best = [high_scores.get_high_score()]

    def remember_high_score(snap: SessionSnapshot) -> None:
        best[0] = max(best[0], snap.high_score)

    def status_lines() -> list[str]:
        lines = [f"High score: {best[0]}"]
        lines.append(
            f"{base_config.n}-back, {base_config.sequence_length} events, "
            f"{base_config.interval_ms} ms per event"
        )
        lines.extend(last_error)
        return lines

    def open_game(mode: GameMode) -> None:
        engine = build_nback_engine(
            clock=real_clock,
            seed=_new_seed(),
            config=base_config.with_mode(mode),
            high_scores=high_scores,
            sink=_SpeakingSink(speaker),
        )
        try:
            engine.start_game()
        except (InvalidParameters, GenerationExhausted) as exc:
            logger.warning("could not start game: %s", exc)
            last_error[:] = [f"Cannot start: {exc}"]
            return
        last_error.clear()
        engine.subscribe(remember_high_score)
        app.push(GameScreen(app, engine=engine, speaker=speaker, db_path=store_path))

    main_items = [
        MenuItem(f"Play {MODE_LABELS[mode]}", lambda mode=mode: open_game(mode)) for mode in GameMode
    ]
    main_items.append(MenuItem("Quit", app.quit))
    app.push(MenuScreen(app, "N-Back Trainer", main_items, is_root=True, status=status_lines))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        speaker.stop()
        pygame.quit()

    return 0
