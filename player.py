"""Playback of a single selected video with end-of-media notification."""

from __future__ import annotations

import logging
from pathlib import Path

from PySide6.QtCore import QObject, QUrl, Signal, Slot
from PySide6.QtMultimedia import QAudioOutput, QMediaPlayer
from PySide6.QtMultimediaWidgets import QVideoWidget

LOGGER = logging.getLogger(__name__)


class CompletionTracker:
    """One-shot registration of the video whose natural end should be reported."""

    def __init__(self) -> None:
        self._armed: Path | None = None

    def arm(self, path: Path) -> None:
        self._armed = path

    def disarm(self) -> None:
        self._armed = None

    @property
    def armed(self) -> Path | None:
        return self._armed

    def fire(self) -> Path | None:
        """Return the armed path once, then forget it."""
        path = self._armed
        self._armed = None
        return path


class VideoPlayer(QObject):
    """Qt media player wrapper that reports when a video plays to its end."""

    playback_finished = Signal(object)  # Path
    playback_error = Signal(str)

    def __init__(self, video_widget: QVideoWidget) -> None:
        super().__init__()
        self._player = QMediaPlayer(self)
        self._audio = QAudioOutput(self)
        self._player.setAudioOutput(self._audio)
        self._player.setVideoOutput(video_widget)

        self._completion = CompletionTracker()
        self._current: Path | None = None

        self._player.mediaStatusChanged.connect(self._on_media_status_changed)
        self._player.errorOccurred.connect(self._on_error)

    @property
    def current(self) -> Path | None:
        return self._current

    def play(self, path: Path) -> None:
        """Switch to ``path`` and start playing it from the beginning."""
        # Drop the old registration first so stopping it cannot mark it watched.
        self._completion.disarm()
        self._player.stop()

        self._current = path
        self._player.setSource(QUrl.fromLocalFile(str(path)))
        self._completion.arm(path)
        self._player.play()
        LOGGER.info("Playing: %s", path)

    def stop(self) -> None:
        self._completion.disarm()
        self._player.stop()

    def toggle_pause(self) -> None:
        state = self._player.playbackState()
        if state == QMediaPlayer.PlaybackState.PlayingState:
            self._player.pause()
        elif state == QMediaPlayer.PlaybackState.PausedState:
            self._player.play()

    def set_volume(self, level: int) -> None:
        self._audio.setVolume(max(0.0, min(1.0, level / 100.0)))

    def set_muted(self, muted: bool) -> None:
        self._audio.setMuted(muted)

    @Slot("QMediaPlayer::MediaStatus")
    def _on_media_status_changed(self, status: QMediaPlayer.MediaStatus) -> None:
        if status != QMediaPlayer.MediaStatus.EndOfMedia:
            return

        finished = self._completion.fire()
        if finished is None:
            return
        LOGGER.info("Finished: %s", finished)
        self.playback_finished.emit(finished)

    @Slot("QMediaPlayer::Error", str)
    def _on_error(self, _error: QMediaPlayer.Error, message: str) -> None:
        error_message = message or "Unknown playback error"
        LOGGER.error("Playback error: %s", error_message)
        self._completion.disarm()
        self.playback_error.emit(error_message)
