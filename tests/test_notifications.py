import os
import platform
import time
import wave

import pytest

from pomodoro.core import notifications
from pomodoro.core.models import SessionType
from pomodoro.core.notifications import SAMPLE_RATE, DesktopNotifier, NullNotifier, chime_samples, write_chime
from pomodoro.core.scheduler import ManualScheduler
from pomodoro.core.settings import TimerSettings
from pomodoro.core.timer import PomodoroTimer


class SilentDesktopNotifier(DesktopNotifier):
    def play_tone(self, volume: float) -> None:
        pass


def test_chime_covers_both_tones() -> None:
    samples = chime_samples()
    expected = int(SAMPLE_RATE * 0.15) + int(SAMPLE_RATE * 0.3)
    assert len(samples) == expected
    assert max(samples) <= 32767
    assert min(samples) >= -32767
    assert any(samples[expected - 100:])


def test_write_chime_produces_mono_wav(tmp_path) -> None:
    path = write_chime(tmp_path / "chime.wav")
    with wave.open(str(path), "rb") as handle:
        assert handle.getnchannels() == 1
        assert handle.getsampwidth() == 2
        assert handle.getframerate() == SAMPLE_RATE
        assert handle.getnframes() == len(chime_samples())


def test_desktop_notifier_writes_chime_up_front(tmp_path) -> None:
    path = tmp_path / "chime.wav"
    DesktopNotifier(chime_path=path)
    assert path.exists()


def test_null_notifier_accepts_calls() -> None:
    notifier = NullNotifier()
    notifier.notify("title", "body")
    notifier.play_tone(0.7)


def test_linux_notify_launches_notify_send(monkeypatch, tmp_path) -> None:
    calls = []
    monkeypatch.setattr(notifications.platform, "system", lambda: "Linux")
    monkeypatch.setattr(notifications, "launch_detached", lambda command: calls.append(command) or True)

    DesktopNotifier(chime_path=tmp_path / "chime.wav").notify("Pomodoro Timer", "Break over! Time to focus.")

    assert calls == [["notify-send", "Pomodoro Timer", "Break over! Time to focus."]]


def test_notify_that_cannot_start_is_logged(monkeypatch, tmp_path, caplog) -> None:
    monkeypatch.setattr(notifications.platform, "system", lambda: "Darwin")
    monkeypatch.setattr(notifications, "launch_detached", lambda command: False)

    DesktopNotifier(chime_path=tmp_path / "chime.wav").notify("Pomodoro Timer", "done")

    assert "Desktop notification failed: osascript" in caplog.text


@pytest.mark.skipif(platform.system() != "Linux", reason="uses a shell script as notify-send")
def test_missing_notify_send_is_logged(monkeypatch, tmp_path, caplog) -> None:
    monkeypatch.setenv("PATH", str(tmp_path))

    DesktopNotifier(chime_path=tmp_path / "chime.wav").notify("Pomodoro Timer", "done")

    assert "Desktop notification failed: notify-send" in caplog.text


@pytest.mark.skipif(platform.system() != "Linux", reason="uses a shell script as notify-send")
def test_slow_notify_send_does_not_delay_tick(monkeypatch, tmp_path) -> None:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    script = bin_dir / "notify-send"
    script.write_text("#!/bin/sh\nsleep 2\n")
    script.chmod(0o755)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")

    scheduler = ManualScheduler()
    timer = PomodoroTimer(
        TimerSettings(work_minutes=1),
        notifier=SilentDesktopNotifier(chime_path=tmp_path / "chime.wav"),
        scheduler=scheduler,
    )
    timer.start()
    scheduler.advance(59)

    started = time.monotonic()
    timer.tick()
    elapsed = time.monotonic() - started

    assert timer.current_type == SessionType.SHORT_BREAK
    assert elapsed < 0.5
