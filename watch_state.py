"""Persisted watched/unwatched status keyed by absolute video path."""

from __future__ import annotations

from dataclasses import replace
import json
import logging
from pathlib import Path
import threading
from typing import Iterable

from PySide6.QtCore import QStandardPaths

from library import Node, iter_videos

LOGGER = logging.getLogger(__name__)

STATE_FILE_NAME = "videoStatus.json"

WatchMap = dict[str, bool]


class PersistenceWriteError(OSError):
    """Watch state could not be written to disk."""


def default_state_path() -> Path:
    """Per-user documents location holding the state file."""
    location = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.DocumentsLocation)
    base = Path(location) if location else Path.home()
    return base / STATE_FILE_NAME


class WatchStateStore:
    """Single owner of the watch-state file.

    Every call reads the file again; nothing is cached between calls.
    Writes go through one lock so two completions cannot drop each other.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = Path(path) if path is not None else default_state_path()
        self._write_lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> WatchMap:
        """Return the persisted mapping, or an empty one if it is missing or unreadable."""
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            LOGGER.warning("Unable to read watch state %s: %s", self._path, exc)
            return {}

        try:
            data = json.loads(raw)
        except ValueError as exc:
            LOGGER.warning("Ignoring malformed watch state %s: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            LOGGER.warning("Ignoring watch state %s: top level is not an object", self._path)
            return {}

        return {str(key): value for key, value in data.items() if isinstance(value, bool)}

    def save(self, mapping: WatchMap) -> None:
        """Overwrite the state file with ``mapping``."""
        payload = json.dumps(mapping, indent=2, sort_keys=True) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(payload, encoding="utf-8")
        except OSError as exc:
            raise PersistenceWriteError(f"Unable to write watch state {self._path}: {exc}") from exc

    def mark_watched(self, path: Path | str) -> bool:
        """Record ``path`` as watched. Returns False if the write failed."""
        key = str(path)
        with self._write_lock:
            mapping = self.load()
            mapping[key] = True
            try:
                self.save(mapping)
            except PersistenceWriteError as exc:
                LOGGER.error("%s", exc)
                return False
        LOGGER.info("Marked watched: %s", key)
        return True

    def is_watched(self, path: Path | str) -> bool:
        return self.load().get(str(path), False)

    @staticmethod
    def annotate(nodes: Iterable[Node], watch_map: WatchMap) -> list[Node]:
        """Copy of ``nodes`` with each video's ``watched`` flag taken from ``watch_map``."""
        annotated: list[Node] = []
        for node in nodes:
            if node.is_folder:
                children = tuple(WatchStateStore.annotate(node.children, watch_map))
                annotated.append(replace(node, children=children))
            else:
                annotated.append(replace(node, watched=watch_map.get(str(node.path), False)))
        return annotated

    @staticmethod
    def mark_in_tree(nodes: Iterable[Node], path: Path | str) -> list[Node]:
        """Copy of ``nodes`` with ``path`` flagged watched and every other flag kept."""
        nodes = list(nodes)
        watch_map = {str(video.path): video.watched for video in iter_videos(nodes)}
        watch_map[str(path)] = True
        return WatchStateStore.annotate(nodes, watch_map)
