"""Unit tests for the selection store."""

import threading
import unittest

from mirrorselect.modules.selection_store import SelectionStore


class TestSelectionStore(unittest.TestCase):
    """Tests for SelectionStore."""

    def setUp(self):
        self.store = SelectionStore()

    def test_read_before_publish_is_none(self):
        self.assertIsNone(self.store.read("all"))

    def test_publish_then_read(self):
        self.assertTrue(self.store.publish("all", "fast.example.com"))
        self.assertEqual(self.store.read("all"), "fast.example.com")

    def test_empty_publish_keeps_previous(self):
        self.store.publish("all", "fast.example.com")
        self.assertFalse(self.store.publish("all", ""))
        self.assertFalse(self.store.publish("all", None))
        self.assertEqual(self.store.read("all"), "fast.example.com")

    def test_empty_publish_before_any_value(self):
        self.assertFalse(self.store.publish("all", ""))
        self.assertIsNone(self.store.read("all"))

    def test_groups_are_independent(self):
        self.store.publish("single", "a.test")
        self.store.publish("multi", "b.test")
        self.assertEqual(self.store.read("single"), "a.test")
        self.assertEqual(self.store.read("multi"), "b.test")
        self.assertEqual(set(self.store.snapshot()), {"single", "multi"})

    def test_snapshot_is_a_copy(self):
        self.store.publish("all", "a.test")
        snap = self.store.snapshot()
        self.store.publish("all", "b.test")
        self.assertEqual(snap["all"].host, "a.test")

    def test_concurrent_publish_and_read_never_tear(self):
        publishers, readers, rounds = 8, 8, 300
        published = {f"mirror-{p}-{i}.example.com" for p in range(publishers) for i in range(rounds)}
        observed: list[str | None] = []
        observed_lock = threading.Lock()
        start = threading.Barrier(publishers + readers)

        def publish(p):
            start.wait()
            for i in range(rounds):
                self.store.publish("all", f"mirror-{p}-{i}.example.com")

        def read():
            start.wait()
            seen = [self.store.read("all") for _ in range(rounds)]
            with observed_lock:
                observed.extend(seen)

        threads = [threading.Thread(target=publish, args=(p,)) for p in range(publishers)]
        threads += [threading.Thread(target=read) for _ in range(readers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for value in observed:
            if value is not None:
                self.assertIn(value, published)
        self.assertIn(self.store.read("all"), published)


if __name__ == "__main__":
    unittest.main()
