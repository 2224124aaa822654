import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from app.stores import MemoryRecordClient
from batch_fill import BatchFillEngine
from hubsync.errors import FillError, RemoteError
from hubsync.records import Attachment, Record
from record_store import RecordStore

TABLE = "Zadania"


class FailingClient(MemoryRecordClient):
    def __init__(self, fail_ids=()) -> None:
        super().__init__()
        self.fail_ids = set(fail_ids)

    async def update_record(self, table, record_id, fields):
        if record_id in self.fail_ids:
            self.calls.append(("update", table, record_id, dict(fields)))
            raise RemoteError("rate limited", status=429)
        await super().update_record(table, record_id, fields)


def _records(count: int = 5) -> list[Record]:
    # rec0 is newest, so store index == number
    return [
        Record(id=f"rec{i}", created_time=f"2024-01-{20 - i:02d}T00:00:00.000Z", fields={"Status": "Todo"})
        for i in range(count)
    ]


class TestBatchFill(unittest.IsolatedAsyncioTestCase):
    def _engine(self, client, records=None, attachment_keys=()):
        store = RecordStore()
        records = records if records is not None else _records()
        store.replace(records)
        client.seed(TABLE, records)
        return store, BatchFillEngine(store, client, TABLE, attachment_keys)

    def _updated_ids(self, client) -> list[str]:
        return [call[2] for call in client.calls if call[0] == "update"]

    async def test_fill_from_index_two_over_zero_to_four(self) -> None:
        client = FailingClient()
        _, engine = self._engine(client)
        engine.begin_fill("rec2", "Status", "Done", anchor_record_id="rec0")
        self.assertEqual(engine.update_target("rec4"), (0, 4))
        result = await engine.commit_fill()
        self.assertEqual(self._updated_ids(client), ["rec0", "rec1", "rec3", "rec4"])
        self.assertEqual(result.succeeded, 4)
        self.assertTrue(result.ok)

    async def test_range_is_order_insensitive(self) -> None:
        client = FailingClient()
        _, engine = self._engine(client)
        engine.begin_fill("rec2", "Status", "Done")
        engine.update_target("rec4")
        self.assertEqual(engine.update_target("rec0"), (2, 0))
        result = await engine.commit_fill()
        self.assertEqual(self._updated_ids(client), ["rec0", "rec1"])
        self.assertEqual(result.targets, ["rec0", "rec1"])

        client.calls.clear()
        engine.begin_fill("rec2", "Status", "Done")
        engine.update_target("rec4")
        await engine.commit_fill()
        self.assertEqual(self._updated_ids(client), ["rec3", "rec4"])

    async def test_range_reresolved_after_snapshot_change(self) -> None:
        client = FailingClient()
        store, engine = self._engine(client)
        engine.begin_fill("rec3", "Status", "Done")
        engine.update_target("rec4")
        newer = Record(id="recNew", created_time="2024-02-01T00:00:00.000Z", fields={})
        store.replace([newer] + _records())
        await engine.commit_fill()
        self.assertEqual(self._updated_ids(client), ["rec4"])

    async def test_failures_are_collected_not_fatal(self) -> None:
        client = FailingClient(fail_ids={"rec1", "rec3"})
        _, engine = self._engine(client, records=_records(6))
        engine.begin_fill("rec0", "Status", "Done")
        engine.update_target("rec4")
        result = await engine.commit_fill()
        self.assertEqual(result.succeeded, 2)
        self.assertEqual([rid for rid, _ in result.failed], ["rec1", "rec3"])
        self.assertEqual(result.failed[0][1].status, 429)
        self.assertEqual(self._updated_ids(client), ["rec1", "rec2", "rec3", "rec4"])
        self.assertEqual(result.summary()["failed"], 2)
        self.assertFalse(engine.active)

    async def test_uses_actual_field_key(self) -> None:
        client = FailingClient()
        records = _records(2)
        records[1].fields = {"status": "Todo"}
        _, engine = self._engine(client, records=records)
        engine.begin_fill("rec0", "Status", "Done")
        engine.update_target("rec1")
        await engine.commit_fill()
        self.assertEqual(client.calls[-1], ("update", TABLE, "rec1", {"status": "Done"}))

    async def test_unresolved_key_falls_back_to_logical(self) -> None:
        client = FailingClient()
        records = _records(2)
        records[1].fields = {}
        _, engine = self._engine(client, records=records)
        engine.begin_fill("rec0", "Status", "Done")
        engine.update_target("rec1")
        await engine.commit_fill()
        self.assertEqual(client.calls[-1][3], {"Status": "Done"})

    async def test_attachment_column_wraps_url(self) -> None:
        client = FailingClient()
        _, engine = self._engine(client, attachment_keys=["Zdjęcie"])
        engine.begin_fill("rec0", "zdjęcie", "https://cdn/x.png")
        engine.update_target("rec1")
        await engine.commit_fill()
        sent = client.calls[-1][3]["zdjęcie"]
        self.assertEqual(sent, [Attachment(url="https://cdn/x.png")])

    async def test_unknown_pointer_keeps_range(self) -> None:
        client = FailingClient()
        _, engine = self._engine(client)
        engine.begin_fill("rec1", "Status", "Done")
        engine.update_target("rec3")
        self.assertEqual(engine.update_target("nope"), (1, 3))

    async def test_begin_rejects_unknown_source_and_double_begin(self) -> None:
        client = FailingClient()
        _, engine = self._engine(client)
        with self.assertRaises(FillError):
            engine.begin_fill("nope", "Status", "Done")
        engine.begin_fill("rec1", "Status", "Done")
        with self.assertRaises(FillError):
            engine.begin_fill("rec2", "Status", "Done")
        engine.cancel()
        with self.assertRaises(FillError):
            await engine.commit_fill()

    async def test_single_row_fill_writes_nothing(self) -> None:
        client = FailingClient()
        _, engine = self._engine(client)
        engine.begin_fill("rec1", "Status", "Done")
        result = await engine.commit_fill()
        self.assertEqual(result.succeeded, 0)
        self.assertEqual(self._updated_ids(client), [])


if __name__ == "__main__":
    unittest.main()
