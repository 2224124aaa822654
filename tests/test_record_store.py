import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from hubsync.records import Record
from record_store import RecordStore


def _rec(record_id: str, created: str, **fields) -> Record:
    return Record(id=record_id, created_time=created, fields=dict(fields))


class TestRecordStore(unittest.TestCase):
    def test_sorted_newest_first(self) -> None:
        store = RecordStore()
        store.replace(
            [
                _rec("a", "2024-01-01T00:00:00.000Z"),
                _rec("c", "2024-03-01T00:00:00.000Z"),
                _rec("b", "2024-02-01T00:00:00.000Z"),
            ]
        )
        self.assertEqual([r.id for r in store.all()], ["c", "b", "a"])
        self.assertEqual(store.index_of("b"), 1)

    def test_ties_keep_arrival_order(self) -> None:
        store = RecordStore()
        same = "2024-01-01T00:00:00.000Z"
        store.replace([_rec("x", same), _rec("y", same), _rec("z", "2023-01-01T00:00:00.000Z")])
        self.assertEqual([r.id for r in store.all()], ["x", "y", "z"])

    def test_unparseable_created_time_sorts_last(self) -> None:
        store = RecordStore()
        store.replace([_rec("bad", "not-a-date"), _rec("ok", "2024-01-01T00:00:00.000Z")])
        self.assertEqual([r.id for r in store.all()], ["ok", "bad"])

    def test_selection_follows_new_snapshot(self) -> None:
        store = RecordStore()
        store.replace([_rec("a", "2024-01-01T00:00:00.000Z", Status="Todo")])
        before = store.select("a")
        store.replace([_rec("a", "2024-01-01T00:00:00.000Z", Status="Done")])
        after = store.selected
        self.assertIsNotNone(after)
        self.assertIsNot(before, after)
        self.assertEqual(after.id, "a")
        self.assertEqual(after.fields["Status"], "Done")

    def test_selection_cleared_when_record_deleted(self) -> None:
        store = RecordStore()
        store.replace([_rec("a", "2024-01-01T00:00:00.000Z"), _rec("b", "2024-01-02T00:00:00.000Z")])
        store.select("a")
        store.replace([_rec("b", "2024-01-02T00:00:00.000Z")])
        self.assertIsNone(store.selected)
        store.replace([_rec("a", "2024-01-01T00:00:00.000Z")])
        self.assertIsNone(store.selected)

    def test_replace_copies_input(self) -> None:
        store = RecordStore()
        incoming = [_rec("a", "2024-01-01T00:00:00.000Z", Status="Todo")]
        store.replace(incoming)
        incoming[0].fields["Status"] = "Mutated"
        self.assertEqual(store.find_by_id("a").fields["Status"], "Todo")
        self.assertEqual(store.version, 1)


if __name__ == "__main__":
    unittest.main()
