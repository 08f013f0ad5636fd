"""
Tests for persistence: the JSON key-value store, memory slots and the
saved-equation list.
"""

import json
import os
import shutil
import tempfile
import unittest

from storage import (
    KeyValueStore,
    MemorySlots,
    SavedEquations,
    canonical_display,
    parse_saved_value,
    parse_stored_memory_value,
)


class TestKeyValueStore(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.path = os.path.join(self.tmp, "store.json")

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def test_missing_file_is_empty(self):
        store = KeyValueStore(self.path)
        self.assertIsNone(store.get("anything"))

    def test_values_persist_across_instances(self):
        KeyValueStore(self.path).set("k", "v")
        self.assertEqual(KeyValueStore(self.path).get("k"), "v")

    def test_corrupt_file_is_ignored(self):
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("{not json")
        with self.assertLogs("storage", level="WARNING"):
            store = KeyValueStore(self.path)
        self.assertIsNone(store.get("k"))
        store.set("k", "v")
        self.assertEqual(KeyValueStore(self.path).get("k"), "v")

    def test_non_object_top_level_is_ignored(self):
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump([1, 2, 3], f)
        with self.assertLogs("storage", level="WARNING"):
            self.assertIsNone(KeyValueStore(self.path).get("k"))

    def test_non_string_values_dropped(self):
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"a": "x", "b": 3}, f)
        store = KeyValueStore(self.path)
        self.assertEqual(store.get("a"), "x")
        self.assertIsNone(store.get("b"))

    def test_json_helpers(self):
        store = KeyValueStore(None)
        store.set_json("list", [1, None])
        self.assertEqual(store.get_json("list"), [1, None])
        store.set("bad", "[1,")
        self.assertIsNone(store.get_json("bad"))


class TestMemorySlots(unittest.TestCase):

    def test_parse_stored_memory_value(self):
        self.assertEqual(parse_stored_memory_value(12), 12.0)
        self.assertEqual(parse_stored_memory_value("2.5"), 2.5)
        self.assertEqual(parse_stored_memory_value("3 1/2"), 3.5)
        self.assertEqual(parse_stored_memory_value("1′ 6″"), 18.0)
        self.assertIsNone(parse_stored_memory_value("abc"))
        self.assertIsNone(parse_stored_memory_value(None))
        self.assertIsNone(parse_stored_memory_value(True))
        self.assertIsNone(parse_stored_memory_value("nan"))

    def test_load_normalises_and_writes_back(self):
        store = KeyValueStore(None)
        store.set_json("memory_slots", [12, "3 1/2", "abc", None])
        slots = MemorySlots(store)
        self.assertEqual(slots.values, [12.0, 3.5, None, None, None])
        self.assertEqual(store.get_json("memory_slots"), [12.0, 3.5, None, None, None])

    def test_put_and_label(self):
        slots = MemorySlots(KeyValueStore(None))
        self.assertEqual(slots.label(1), "M2")
        slots.put(1, 10 / 3)
        self.assertEqual(slots.label(1), "3 5/16")
        slots.put(1, float("inf"))
        self.assertIsNone(slots.get(1))

    def test_index_out_of_range(self):
        slots = MemorySlots(KeyValueStore(None))
        with self.assertRaises(IndexError):
            slots.get(5)
        with self.assertRaises(IndexError):
            slots.put(-1, 1.0)


class TestSavedEquations(unittest.TestCase):

    def setUp(self):
        self.store = KeyValueStore(None)
        self.saved = SavedEquations(self.store, limit=3)

    def _add(self, expr, frac="1″"):
        return self.saved.add(expr, frac, "1.0000″", ["1"], [None], 1.0)

    def test_add_newest_first(self):
        a = self._add("1 + 0")
        b = self._add("2 - 1")
        self.assertEqual([i["id"] for i in self.saved.items], [b["id"], a["id"]])
        self.assertEqual(len(a["id"]), 32)
        self.assertIsInstance(a["ts"], int)

    def test_add_rejects_empty_and_duplicates(self):
        self.assertIsNone(self._add("  "))
        self._add("1 + 0")
        self.assertIsNone(self._add("1 + 0"))
        self.assertIsNotNone(self._add("1 + 0", frac="2″"))

    def test_limit_drops_oldest(self):
        for i in range(5):
            self._add(f"{i} + 1")
        self.assertEqual(len(self.saved), 3)
        self.assertEqual(self.saved.items[-1]["expr"], "2 + 1")

    def test_persisted_and_reloaded(self):
        item = self._add("1 + 0")
        again = SavedEquations(self.store)
        self.assertEqual(again.find(item["id"])["expr"], "1 + 0")

    def test_non_dict_items_dropped_on_load(self):
        self.store.set_json("saved_equations", [{"id": "a"}, "junk", 3])
        self.assertEqual(len(SavedEquations(self.store)), 1)

    def test_rename(self):
        item = self._add("1 + 0")
        self.assertTrue(self.saved.rename(item["id"], "Door"))
        self.assertEqual(self.saved.find(item["id"])["label"], "Door")
        self.saved.rename(item["id"], "   ")
        self.assertNotIn("label", self.saved.find(item["id"]))
        self.assertFalse(self.saved.rename("missing", "x"))

    def test_delete_and_clear(self):
        a = self._add("1 + 0")
        self._add("2 - 1")
        self.assertTrue(self.saved.delete(a["id"]))
        self.assertFalse(self.saved.delete(a["id"]))
        self.saved.clear()
        self.assertEqual(self.store.get_json("saved_equations"), [])

    def test_canonical_display(self):
        self.assertEqual(canonical_display("5 + 3", "8″"), "5 + 3 = 8″")
        self.assertEqual(canonical_display("5 + 3", ""), "5 + 3")
        self.assertEqual(canonical_display("", ""), "")

    def test_parse_saved_value(self):
        self.assertEqual(parse_saved_value({"value": 7.5}), 7.5)
        self.assertEqual(parse_saved_value({"dec": "18.5000″"}), 18.5)
        self.assertEqual(parse_saved_value({"dec": "1.5000′"}), 18.0)
        self.assertEqual(parse_saved_value({"dec": "2.0000\""}), 2.0)
        self.assertIsNone(parse_saved_value({"dec": "junk"}))
        self.assertIsNone(parse_saved_value({}))
        self.assertIsNone(parse_saved_value(None))


if __name__ == "__main__":
    unittest.main()
