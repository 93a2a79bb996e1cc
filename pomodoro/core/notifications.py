"""Completion notifications: desktop popups and the two-tone chime."""

from __future__ import annotations

import logging
import math
import platform
import sys
import tempfile
import wave
from array import array
from pathlib import Path
from typing import Protocol

from PyQt6.QtCore import QProcess, QUrl


logger = logging.getLogger(__name__)

SAMPLE_RATE = 44100
TONE_FREQUENCY = 800.0
TONE_SECONDS = 0.3
SECOND_TONE_DELAY = 0.15
SECOND_TONE_RATIO = 1.25
SECOND_TONE_GAIN = 0.8
FADE_FLOOR = 0.01


class Notifier(Protocol):
    def notify(self, title: str, body: str) -> None: ...

    def play_tone(self, volume: float) -> None: ...


class NullNotifier:
    """Does nothing. Used headless and in tests."""

    def notify(self, title: str, body: str) -> None:
        pass

    def play_tone(self, volume: float) -> None:
        pass


def _tone(frequency: float, gain: float) -> list[float]:
    count = int(SAMPLE_RATE * TONE_SECONDS)
    # exponential fade from `gain` down to FADE_FLOOR over the tone
    decay = math.log(FADE_FLOOR / gain) / count if gain > FADE_FLOOR else 0.0
    return [
        gain * math.exp(decay * i) * math.sin(2 * math.pi * frequency * i / SAMPLE_RATE)
        for i in range(count)
    ]


def chime_samples() -> array:
    """16-bit mono samples of the chime: a tone, then a higher one 150 ms in."""
    first = _tone(TONE_FREQUENCY, 1.0)
    second = _tone(TONE_FREQUENCY * SECOND_TONE_RATIO, SECOND_TONE_GAIN)
    offset = int(SAMPLE_RATE * SECOND_TONE_DELAY)
    mixed = [0.0] * max(len(first), offset + len(second))
    for i, value in enumerate(first):
        mixed[i] += value
    for i, value in enumerate(second):
        mixed[offset + i] += value
    return array("h", (int(max(-1.0, min(1.0, value)) * 32767) for value in mixed))


def write_chime(path: str | Path) -> Path:
    path = Path(path)
    with wave.open(str(path), "wb") as handle:
        handle.setnchannels(1)
        handle.setsampwidth(2)
        handle.setframerate(SAMPLE_RATE)
        handle.writeframes(chime_samples().tobytes())
    return path


def launch_detached(command: list[str]) -> bool:
    """Starts `command` without waiting for it; False if it could not start."""
    started, _pid = QProcess.startDetached(command[0], command[1:])
    return bool(started)


class DesktopNotifier:
    """Native notifications via notify-send/osascript, chime via QtMultimedia."""

    def __init__(self, chime_path: str | Path | None = None) -> None:
        self._chime_path = Path(chime_path) if chime_path else Path(tempfile.gettempdir()) / "pomodoro-chime.wav"
        self._effect = None
        if not self._chime_path.exists():
            write_chime(self._chime_path)

    def notify(self, title: str, body: str) -> None:
        system = platform.system()
        if system == "Linux":
            command = ["notify-send", title, body]
        elif system == "Darwin":
            command = ["osascript", "-e", f'display notification "{body}" with title "{title}"']
        else:
            sys.stdout.write("\a")
            sys.stdout.flush()
            return
        if not launch_detached(command):
            logger.warning("Desktop notification failed: %s", command[0])

    def play_tone(self, volume: float) -> None:
        from PyQt6.QtMultimedia import QSoundEffect

        if self._effect is None:
            self._effect = QSoundEffect()
            self._effect.setSource(QUrl.fromLocalFile(str(self._chime_path)))
        self._effect.setVolume(max(0.0, min(1.0, volume)))
        self._effect.play()
