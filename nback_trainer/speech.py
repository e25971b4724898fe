from __future__ import annotations

import importlib.util
import logging
import os
import shutil
import subprocess
import sys
import time
from pathlib import Path

logger = logging.getLogger(__name__)

DISABLE_ENV = "NBACK_DISABLE_TTS"
BACKEND_ENV = "NBACK_TTS_BACKEND"


class LetterSpeaker:
    """Offline TTS for spoken letters, run in short-lived subprocesses.

    Flush semantics: a new letter stops whatever is still being spoken, so
    each cue is heard at its own tick and never queued behind an older one.
    Headless runs (SDL dummy audio) stay silent.
    """

    _max_utterance_s = 3.0
    _rate_wpm = 176

    def __init__(self) -> None:
        self._backend: str | None = None
        self._active_proc: subprocess.Popen[bytes] | None = None
        self._active_started_s = 0.0

        if os.environ.get(DISABLE_ENV, "0") == "1":
            return
        if os.environ.get("SDL_AUDIODRIVER", "").strip().lower() == "dummy":
            return

        self._backend = self._resolve_backend()
        if self._backend is None:
            logger.warning("no text-to-speech backend found; audio cues will be silent")

    @property
    def enabled(self) -> bool:
        return self._backend is not None

    @property
    def speaking(self) -> bool:
        return self._active_proc is not None and self._active_proc.poll() is None

    def speak(self, text: str) -> None:
        if self._backend is None:
            return
        phrase = " ".join(str(text).strip().split())
        if phrase == "":
            return

        self.stop()
        proc = self._launch_process(phrase)
        if proc is None:
            logger.warning("text-to-speech backend %s failed; disabling speech", self._backend)
            self._backend = None
            return
        self._active_proc = proc
        self._active_started_s = time.monotonic()

    def update(self) -> None:
        proc = self._active_proc
        if proc is None:
            return
        if proc.poll() is not None:
            self._active_proc = None
        elif (time.monotonic() - self._active_started_s) > self._max_utterance_s:
            self.stop()

    def stop(self) -> None:
        proc = self._active_proc
        self._active_proc = None
        if proc is not None:
            self._terminate_process(proc)

    @staticmethod
    def _terminate_process(proc: subprocess.Popen[bytes]) -> None:
        if proc.poll() is not None:
            return
        try:
            proc.terminate()
            proc.wait(timeout=0.5)
        except (OSError, subprocess.TimeoutExpired):
            try:
                proc.kill()
            except OSError as exc:
                logger.debug("could not kill speech process: %s", exc)

    @staticmethod
    def _resolve_backend() -> str | None:
        supported = ("say", "espeak", "pyttsx3-subprocess")
        forced = os.environ.get(BACKEND_ENV, "").strip().lower()
        if forced in supported and LetterSpeaker._backend_available(forced):
            return forced

        candidates: list[str] = []
        if sys.platform == "darwin":
            candidates.append("say")
        candidates.extend(("espeak", "pyttsx3-subprocess"))
        for name in candidates:
            if LetterSpeaker._backend_available(name):
                return name
        return None

    @staticmethod
    def _backend_available(name: str) -> bool:
        if name == "say":
            return (shutil.which("say") is not None) or Path("/usr/bin/say").exists()
        if name == "espeak":
            return shutil.which("espeak") is not None
        if name == "pyttsx3-subprocess":
            return importlib.util.find_spec("pyttsx3") is not None
        return False

    def _launch_process(self, text: str) -> subprocess.Popen[bytes] | None:
        backend = self._backend
        rate = str(self._rate_wpm)
        if backend == "say":
            argv = [shutil.which("say") or "/usr/bin/say", "-r", rate, text]
        elif backend == "espeak":
            argv = ["espeak", "-s", rate, text]
        elif backend == "pyttsx3-subprocess":
            script = (
                "import sys\n"
                "import pyttsx3\n"
                "e=pyttsx3.init()\n"
                f"e.setProperty('rate', {rate})\n"
                "e.say(' '.join(sys.argv[1:]))\n"
                "e.runAndWait()\n"
            )
            argv = [sys.executable, "-c", script, text]
        else:
            return None

        try:
            return subprocess.Popen(argv, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except OSError:
            return None
