"""Folder scanning into a tree of folder and video nodes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import os
from pathlib import Path
import stat
import threading
from typing import Iterable, Iterator
import uuid

LOGGER = logging.getLogger(__name__)

VIDEO_EXTENSIONS = frozenset({".mp4", ".mov", ".m4v", ".avi", ".mkv", ".wmv"})
IGNORED_NAMES = {
    "$recycle.bin",
    "system volume information",
    "__macosx",
}


class FilesystemError(OSError):
    """Root folder is missing, not a directory, or cannot be listed."""


class ScanCancelled(Exception):
    """A newer scan superseded this one."""


class NodeKind(Enum):
    FOLDER = "folder"
    VIDEO = "video"


@dataclass(frozen=True, slots=True)
class Node:
    """Single entry of the browsable tree."""

    path: Path
    kind: NodeKind
    children: tuple[Node, ...] = ()
    watched: bool = False
    identity: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def display_name(self) -> str:
        return self.path.name

    @property
    def is_folder(self) -> bool:
        return self.kind is NodeKind.FOLDER

    @property
    def is_video(self) -> bool:
        return self.kind is NodeKind.VIDEO


class ScanToken:
    """Cancellation flag shared between the UI and a running scan."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ScanGeneration:
    """Numbers successive scans so only the latest one's result is applied."""

    def __init__(self) -> None:
        self._current = 0
        self._token: ScanToken | None = None

    @property
    def current(self) -> int:
        return self._current

    def begin(self) -> tuple[int, ScanToken]:
        """Cancel any running scan and start a new generation."""
        self.cancel()
        self._current += 1
        self._token = ScanToken()
        return self._current, self._token

    def cancel(self) -> None:
        if self._token is not None:
            self._token.cancel()

    def is_current(self, generation: int) -> bool:
        return generation == self._current


def build_tree(root_folder: Path, token: ScanToken | None = None) -> list[Node]:
    """Recursively scan ``root_folder`` into folder and video nodes.

    Hidden entries are skipped, siblings are sorted by name using plain
    code-point ordering, and files without a recognized video extension are
    left out. A subfolder that cannot be listed shows up empty; only a bad
    root raises :class:`FilesystemError`.
    """
    root_folder = Path(root_folder).absolute()
    if not root_folder.exists():
        raise FilesystemError(f"Folder does not exist: {root_folder}")
    if not root_folder.is_dir():
        raise FilesystemError(f"Not a folder: {root_folder}")

    try:
        entries = _list_entries(root_folder)
    except OSError as exc:
        raise FilesystemError(f"Cannot read folder: {root_folder} ({exc.strerror or exc})") from exc

    LOGGER.info("Building tree under: %s", root_folder)
    nodes = _build_nodes(entries, token)
    folders, videos = count_nodes(nodes)
    LOGGER.info("Found %d folder(s) and %d video(s)", folders, videos)
    return nodes


def _list_entries(folder: Path) -> list[os.DirEntry]:
    with os.scandir(folder) as iterator:
        entries = [entry for entry in iterator if not is_hidden_entry(entry)]
    entries.sort(key=lambda entry: entry.name)
    return entries


def _build_nodes(entries: Iterable[os.DirEntry], token: ScanToken | None) -> list[Node]:
    nodes: list[Node] = []
    for entry in entries:
        if token is not None and token.cancelled:
            raise ScanCancelled()

        path = Path(entry.path)
        if _is_dir(entry):
            nodes.append(Node(path=path, kind=NodeKind.FOLDER, children=_build_subtree(path, token)))
        elif is_video_path(path):
            nodes.append(Node(path=path, kind=NodeKind.VIDEO))
    return nodes


def _build_subtree(folder: Path, token: ScanToken | None) -> tuple[Node, ...]:
    try:
        entries = _list_entries(folder)
    except OSError as exc:
        LOGGER.debug("Skipping unreadable folder %s: %s", folder, exc)
        return ()
    return tuple(_build_nodes(entries, token))


def _is_dir(entry: os.DirEntry) -> bool:
    try:
        return entry.is_dir()
    except OSError:
        return False


def is_hidden_name(name: str) -> bool:
    """Best-effort filename or directory-name filtering."""
    if not name:
        return True
    if name.startswith("."):
        return True
    return name.lower() in IGNORED_NAMES


def is_hidden_entry(entry: os.DirEntry) -> bool:
    if is_hidden_name(entry.name):
        return True
    # Only Windows reports st_file_attributes.
    if os.name != "nt":
        return False
    try:
        attributes = getattr(entry.stat(follow_symlinks=False), "st_file_attributes", 0)
    except OSError:
        return False
    return bool(attributes & getattr(stat, "FILE_ATTRIBUTE_HIDDEN", 0))


def is_video_path(path: Path) -> bool:
    return path.suffix.lower() in VIDEO_EXTENSIONS


def iter_videos(nodes: Iterable[Node]) -> Iterator[Node]:
    """Yield every video node, depth-first in display order."""
    for node in nodes:
        if node.is_folder:
            yield from iter_videos(node.children)
        else:
            yield node


def count_nodes(nodes: Iterable[Node]) -> tuple[int, int]:
    """Return ``(folders, videos)`` for the whole tree."""
    folders = 0
    videos = 0
    for node in nodes:
        if node.is_folder:
            folders += 1
            sub_folders, sub_videos = count_nodes(node.children)
            folders += sub_folders
            videos += sub_videos
        else:
            videos += 1
    return folders, videos
