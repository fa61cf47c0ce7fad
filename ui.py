"""GUI and user interaction logic for Video Tree Player."""

from __future__ import annotations

import logging
from pathlib import Path

from PySide6.QtCore import QObject, QThread, Signal, Slot, Qt
from PySide6.QtGui import QBrush
from PySide6.QtMultimediaWidgets import QVideoWidget
from PySide6.QtWidgets import (
    QCheckBox,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSlider,
    QSplitter,
    QStyle,
    QTextEdit,
    QTreeWidget,
    QTreeWidgetItem,
    QVBoxLayout,
    QWidget,
)

from library import (
    FilesystemError,
    Node,
    ScanCancelled,
    ScanGeneration,
    ScanToken,
    build_tree,
    count_nodes,
    iter_videos,
)
from player import VideoPlayer
from watch_state import WatchStateStore


LOGGER = logging.getLogger(__name__)

PATH_ROLE = Qt.ItemDataRole.UserRole
WATCHED_MARK = "✓"


class ScanWorker(QObject):
    """Background scanner to keep UI responsive."""

    finished = Signal(int, list)
    failed = Signal(int, str)
    cancelled = Signal(int)

    def __init__(self, generation: int, folder: Path, store: WatchStateStore, token: ScanToken) -> None:
        super().__init__()
        self.generation = generation
        self.folder = folder
        self.store = store
        self.token = token

    @Slot()
    def run(self) -> None:
        try:
            nodes = build_tree(self.folder, self.token)
            nodes = self.store.annotate(nodes, self.store.load())
        except ScanCancelled:
            LOGGER.info("Scan cancelled: %s", self.folder)
            self.cancelled.emit(self.generation)
        except FilesystemError as exc:
            self.failed.emit(self.generation, str(exc))
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Unexpected scan failure")
            self.failed.emit(self.generation, str(exc))
        else:
            self.finished.emit(self.generation, nodes)


class MainWindow(QMainWindow):
    """Main application window."""

    def __init__(self, store: WatchStateStore | None = None) -> None:
        super().__init__()
        self.setWindowTitle("Video Tree Player")
        self.resize(1200, 760)

        self.store = store or WatchStateStore()
        self.nodes: list[Node] = []
        self._items_by_path: dict[str, QTreeWidgetItem] = {}

        self._generations = ScanGeneration()
        self._scans: dict[int, tuple[QThread, ScanWorker]] = {}

        self._build_ui()
        self.player = VideoPlayer(self.video_widget)
        self.player.playback_finished.connect(self._on_playback_finished)
        self.player.playback_error.connect(self._on_playback_error)

    def _build_ui(self) -> None:
        container = QWidget(self)
        self.setCentralWidget(container)
        layout = QVBoxLayout(container)

        folder_row = QHBoxLayout()
        self.folder_line = QLineEdit(self)
        self.folder_line.setReadOnly(True)
        self.pick_folder_btn = QPushButton("Select Folder")
        self.rescan_btn = QPushButton("Rescan")
        folder_row.addWidget(QLabel("Video Folder:"))
        folder_row.addWidget(self.folder_line, stretch=1)
        folder_row.addWidget(self.pick_folder_btn)
        folder_row.addWidget(self.rescan_btn)
        layout.addLayout(folder_row)

        splitter = QSplitter(Qt.Orientation.Horizontal, self)

        self.tree = QTreeWidget(self)
        self.tree.setHeaderLabels(["Name", "Watched"])
        self.tree.setColumnWidth(0, 240)
        self.tree.setMinimumWidth(300)
        splitter.addWidget(self.tree)

        player_panel = QWidget(self)
        player_layout = QVBoxLayout(player_panel)
        self.video_widget = QVideoWidget(self)
        self.video_widget.setMinimumHeight(400)
        player_layout.addWidget(self.video_widget, stretch=1)

        controls = QHBoxLayout()
        self.pause_btn = QPushButton("Play/Pause")
        self.stop_btn = QPushButton("Stop")
        self.mute_box = QCheckBox("Mute", self)
        self.volume_slider = QSlider(Qt.Orientation.Horizontal, self)
        self.volume_slider.setRange(0, 100)
        self.volume_slider.setValue(80)
        controls.addWidget(self.pause_btn)
        controls.addWidget(self.stop_btn)
        controls.addWidget(QLabel("Volume:"))
        controls.addWidget(self.volume_slider, stretch=1)
        controls.addWidget(self.mute_box)
        player_layout.addLayout(controls)

        self.current_file_label = QLabel("Select a video to play")
        player_layout.addWidget(self.current_file_label)
        splitter.addWidget(player_panel)
        splitter.setStretchFactor(1, 1)
        layout.addWidget(splitter, stretch=1)

        self.library_label = QLabel("0 folders, 0 videos, 0 watched")
        layout.addWidget(self.library_label)

        self.log_view = QTextEdit(self)
        self.log_view.setReadOnly(True)
        self.log_view.setMaximumHeight(120)
        layout.addWidget(self.log_view)

        self.pick_folder_btn.clicked.connect(self.on_pick_folder)
        self.rescan_btn.clicked.connect(self.on_rescan_clicked)
        self.tree.itemActivated.connect(self._on_item_activated)
        self.pause_btn.clicked.connect(self.player_toggle_pause)
        self.stop_btn.clicked.connect(self.player_stop)
        self.mute_box.toggled.connect(self.player_set_mute)
        self.volume_slider.valueChanged.connect(self.player_set_volume)

    @Slot()
    def on_pick_folder(self) -> None:
        folder = QFileDialog.getExistingDirectory(self, "Choose Video Folder")
        if not folder:
            return

        self.scan_folder(Path(folder))

    @Slot()
    def on_rescan_clicked(self) -> None:
        folder = self.folder_line.text().strip()
        if not folder:
            QMessageBox.information(self, "Pick a folder", "Please choose a video folder first.")
            return
        self.scan_folder(Path(folder))

    def scan_folder(self, folder: Path) -> None:
        generation, token = self._generations.begin()
        self.append_log(f"Scanning: {folder}")

        thread = QThread(self)
        worker = ScanWorker(generation, folder, self.store, token)
        worker.moveToThread(thread)
        self._scans[generation] = (thread, worker)

        thread.started.connect(worker.run)
        worker.finished.connect(lambda gen, nodes: self._on_scan_finished(gen, folder, nodes))
        worker.failed.connect(self._on_scan_failed)

        worker.finished.connect(thread.quit)
        worker.failed.connect(thread.quit)
        worker.cancelled.connect(thread.quit)
        thread.finished.connect(worker.deleteLater)
        thread.finished.connect(thread.deleteLater)
        thread.finished.connect(lambda: self._scans.pop(generation, None))

        thread.start()

    def _on_scan_finished(self, generation: int, folder: Path, nodes: list[Node]) -> None:
        if not self._generations.is_current(generation):
            LOGGER.info("Discarding superseded scan of %s", folder)
            return

        self.folder_line.setText(str(folder))
        self.nodes = nodes
        self._populate_tree(nodes)
        self._refresh_summary()
        self.append_log(f"Scan complete: {folder}")

    def _on_scan_failed(self, generation: int, message: str) -> None:
        if not self._generations.is_current(generation):
            return
        LOGGER.error("Scan failed: %s", message)
        self.append_log(f"Scan failed: {message}")
        QMessageBox.warning(self, "Scan failed", message)

    def _populate_tree(self, nodes: list[Node]) -> None:
        self.tree.clear()
        self._items_by_path.clear()
        for node in nodes:
            self.tree.addTopLevelItem(self._make_item(node))

    def _make_item(self, node: Node) -> QTreeWidgetItem:
        item = QTreeWidgetItem([node.display_name, ""])
        item.setData(0, PATH_ROLE, str(node.path))
        if node.is_folder:
            item.setIcon(0, self.style().standardIcon(QStyle.StandardPixmap.SP_DirIcon))
            for child in node.children:
                item.addChild(self._make_item(child))
        else:
            item.setIcon(0, self.style().standardIcon(QStyle.StandardPixmap.SP_MediaPlay))
            self._set_watched_mark(item, node.watched)
            self._items_by_path[str(node.path)] = item
        return item

    @staticmethod
    def _set_watched_mark(item: QTreeWidgetItem, watched: bool) -> None:
        item.setText(1, WATCHED_MARK if watched else "")
        item.setForeground(1, QBrush(Qt.GlobalColor.darkGreen))

    def _refresh_summary(self) -> None:
        folders, videos = count_nodes(self.nodes)
        watched = sum(1 for video in iter_videos(self.nodes) if video.watched)
        self.library_label.setText(f"{folders} folders, {videos} videos, {watched} watched")

    @Slot(QTreeWidgetItem, int)
    def _on_item_activated(self, item: QTreeWidgetItem, _column: int) -> None:
        path = item.data(0, PATH_ROLE)
        if not path or str(path) not in self._items_by_path:
            return
        self.player.play(Path(path))
        self.current_file_label.setText(Path(path).name)

    @Slot(object)
    def _on_playback_finished(self, path: Path) -> None:
        self.nodes = self.store.mark_in_tree(self.nodes, path)
        item = self._items_by_path.get(str(path))
        if item is not None:
            self._set_watched_mark(item, True)
        self._refresh_summary()

        if self.store.mark_watched(path):
            self.append_log(f"Watched: {path.name}")
        else:
            self.append_log(f"Could not save watched state for {path.name}")

    @Slot(str)
    def _on_playback_error(self, message: str) -> None:
        self.append_log(f"Playback error: {message}")

    @Slot()
    def player_toggle_pause(self) -> None:
        self.player.toggle_pause()

    @Slot()
    def player_stop(self) -> None:
        self.player.stop()
        self.append_log("Stopped.")

    @Slot(bool)
    def player_set_mute(self, checked: bool) -> None:
        self.player.set_muted(checked)

    @Slot(int)
    def player_set_volume(self, value: int) -> None:
        self.player.set_volume(value)

    def closeEvent(self, event) -> None:  # noqa: N802
        self._generations.cancel()
        for thread, _worker in list(self._scans.values()):
            thread.quit()
            thread.wait()
        self.player.stop()
        super().closeEvent(event)

    def append_log(self, message: str) -> None:
        LOGGER.info(message)
        self.log_view.append(message)
