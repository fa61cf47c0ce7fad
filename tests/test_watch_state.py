from __future__ import annotations

import json
import tempfile
import threading
import unittest
from pathlib import Path
from unittest import mock

from library import Node, NodeKind, iter_videos
import watch_state
from watch_state import STATE_FILE_NAME, WatchStateStore


class WatchStateStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.state_path = Path(self._tmp.name) / "state" / STATE_FILE_NAME
        self.store = WatchStateStore(self.state_path)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_file_loads_empty(self) -> None:
        self.assertEqual(self.store.load(), {})

    def test_mark_watched_round_trips_and_keeps_previous_entries(self) -> None:
        self.assertTrue(self.store.mark_watched("/x/a.mp4"))
        self.assertTrue(self.store.mark_watched(Path("/x/b.mp4")))

        loaded = self.store.load()
        self.assertEqual(loaded, {"/x/a.mp4": True, "/x/b.mp4": True})
        self.assertTrue(self.store.is_watched("/x/a.mp4"))
        self.assertFalse(self.store.is_watched("/x/c.mp4"))

    def test_mark_watched_is_idempotent(self) -> None:
        self.store.mark_watched("/x/a.mp4")
        first = self.state_path.read_text(encoding="utf-8")
        self.store.mark_watched("/x/a.mp4")

        self.assertEqual(self.state_path.read_text(encoding="utf-8"), first)
        self.assertEqual(self.store.load(), {"/x/a.mp4": True})

    def test_saved_file_is_sorted_json_object(self) -> None:
        self.store.save({"/z.mp4": True, "/a.mp4": False})

        text = self.state_path.read_text(encoding="utf-8")
        self.assertEqual(json.loads(text), {"/a.mp4": False, "/z.mp4": True})
        self.assertLess(text.index("/a.mp4"), text.index("/z.mp4"))

    def test_corrupt_file_loads_empty(self) -> None:
        self.state_path.parent.mkdir(parents=True)
        self.state_path.write_text("{not json", encoding="utf-8")

        self.assertEqual(self.store.load(), {})

    def test_non_object_file_loads_empty(self) -> None:
        self.state_path.parent.mkdir(parents=True)
        self.state_path.write_text("[1, 2, 3]", encoding="utf-8")

        self.assertEqual(self.store.load(), {})

    def test_non_boolean_values_are_ignored(self) -> None:
        self.state_path.parent.mkdir(parents=True)
        self.state_path.write_text(
            json.dumps({"/a.mp4": True, "/b.mp4": "yes", "/c.mp4": 1, "/d.mp4": False}),
            encoding="utf-8",
        )

        self.assertEqual(self.store.load(), {"/a.mp4": True, "/d.mp4": False})

    def test_corrupt_file_is_replaced_by_mark_watched(self) -> None:
        self.state_path.parent.mkdir(parents=True)
        self.state_path.write_text("garbage", encoding="utf-8")

        self.assertTrue(self.store.mark_watched("/x/a.mp4"))
        self.assertEqual(self.store.load(), {"/x/a.mp4": True})

    def test_write_failure_returns_false(self) -> None:
        # A directory in place of the file makes every write fail.
        self.state_path.mkdir(parents=True)

        with self.assertLogs("watch_state", level="ERROR"):
            self.assertFalse(self.store.mark_watched("/x/a.mp4"))
        self.assertEqual(self.store.load(), {})

    def test_concurrent_marks_are_not_lost(self) -> None:
        paths = [f"/x/{index}.mp4" for index in range(20)]
        threads = [threading.Thread(target=self.store.mark_watched, args=(path,)) for path in paths]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(self.store.load(), {path: True for path in paths})


class AnnotateTests(unittest.TestCase):
    def _tree(self) -> list[Node]:
        sub_video = Node(path=Path("/x/sub/c.mkv"), kind=NodeKind.VIDEO)
        return [
            Node(path=Path("/x/a.mp4"), kind=NodeKind.VIDEO),
            Node(path=Path("/x/b.mp4"), kind=NodeKind.VIDEO),
            Node(path=Path("/x/sub"), kind=NodeKind.FOLDER, children=(sub_video,)),
        ]

    def test_marked_video_is_watched_and_others_default_false(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            store = WatchStateStore(Path(tmp) / STATE_FILE_NAME)
            store.mark_watched("/x/a.mp4")

            annotated = store.annotate(self._tree(), store.load())

        self.assertTrue(annotated[0].watched)
        self.assertFalse(annotated[1].watched)
        self.assertFalse(annotated[2].children[0].watched)

    def test_annotate_recurses_and_leaves_input_untouched(self) -> None:
        tree = self._tree()

        annotated = WatchStateStore.annotate(tree, {"/x/sub/c.mkv": True})

        self.assertTrue(annotated[2].children[0].watched)
        self.assertFalse(tree[2].children[0].watched)
        self.assertEqual(annotated[2].identity, tree[2].identity)
        self.assertEqual(annotated[2].children[0].identity, tree[2].children[0].identity)
        self.assertEqual(annotated[2].kind, NodeKind.FOLDER)

    def test_mark_in_tree_flags_one_video_and_keeps_others(self) -> None:
        tree = WatchStateStore.annotate(self._tree(), {"/x/b.mp4": True})

        updated = WatchStateStore.mark_in_tree(tree, Path("/x/sub/c.mkv"))

        self.assertEqual(
            [video.watched for video in iter_videos(updated)],
            [False, True, True],
        )
        self.assertFalse(tree[2].children[0].watched)
        self.assertEqual(updated[2].children[0].identity, tree[2].children[0].identity)


class DefaultStatePathTests(unittest.TestCase):
    def test_uses_documents_location(self) -> None:
        with mock.patch("watch_state.QStandardPaths") as paths:
            paths.writableLocation.return_value = "/home/user/Documents"
            self.assertEqual(
                watch_state.default_state_path(),
                Path("/home/user/Documents") / STATE_FILE_NAME,
            )

    def test_falls_back_to_home(self) -> None:
        with mock.patch("watch_state.QStandardPaths") as paths:
            paths.writableLocation.return_value = ""
            self.assertEqual(watch_state.default_state_path(), Path.home() / STATE_FILE_NAME)


if __name__ == "__main__":
    unittest.main()
