"""Application entry point for Video Tree Player."""

from __future__ import annotations

import logging
from pathlib import Path
import sys

from PySide6.QtCore import QStandardPaths
from PySide6.QtWidgets import QApplication

from ui import MainWindow

APP_NAME = "Video Tree Player"
LOG_FILE_NAME = "video_tree_player.log"


def log_directory() -> Path:
    """Per-user application data folder, or ``./logs`` when Qt reports none."""
    location = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.AppLocalDataLocation)
    if not location:
        return Path.cwd() / "logs"
    return Path(location) / "logs"


def configure_logging(level: int = logging.INFO, log_dir: Path | None = None) -> Path:
    """Set up console + file logging and return the log file path.

    Scans run on a worker thread, so records carry the thread name.
    """
    log_dir = log_dir if log_dir is not None else log_directory()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)

    root.addHandler(console)
    root.addHandler(file_handler)

    logging.getLogger(__name__).info("Logging initialized: %s", log_path)
    return log_path


def main() -> int:
    """Launch the desktop GUI."""
    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    configure_logging()

    window = MainWindow()
    logging.getLogger(__name__).info("Watch state file: %s", window.store.path)
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
