import unittest
from datetime import datetime, timezone
from types import SimpleNamespace

from bson import ObjectId

from portal_backend.normalize import (
    sort_by_field,
    sort_by_order,
    sort_by_position,
    to_api_format,
    to_epoch_millis,
)


class EpochMillisTests(unittest.TestCase):
    def test_aware_and_naive_datetimes(self):
        aware = datetime(2024, 1, 1, 0, 0, 1, 500000, tzinfo=timezone.utc)
        self.assertEqual(to_epoch_millis(aware), 1704067201500)
        self.assertEqual(to_epoch_millis(aware.replace(tzinfo=None)), 1704067201500)

    def test_timestamp_like_values(self):
        stamp = SimpleNamespace(seconds=1704067200, nanoseconds=250_000_000)
        self.assertEqual(to_epoch_millis(stamp), 1704067200250)
        self.assertEqual(
            to_epoch_millis({"seconds": 1704067200, "nanoseconds": 0}), 1704067200000
        )

    def test_iso_strings(self):
        self.assertEqual(to_epoch_millis("2024-01-01T00:00:00Z"), 1704067200000)
        self.assertEqual(to_epoch_millis("2024-01-01T00:00:00+00:00"), 1704067200000)
        self.assertIsNone(to_epoch_millis("not a date"))


class ApiFormatTests(unittest.TestCase):
    def test_mongo_document(self):
        object_id = ObjectId()
        record = {
            "_id": object_id,
            "title": "Launch",
            "createdAt": datetime(2024, 1, 1, tzinfo=timezone.utc),
            "updatedAt": None,
        }
        formatted = to_api_format(record)
        self.assertEqual(formatted["id"], str(object_id))
        self.assertNotIn("_id", formatted)
        self.assertEqual(formatted["createdAt"], 1704067200000)
        self.assertNotIn("updatedAt", formatted)
        self.assertEqual(formatted["title"], "Launch")

    def test_firestore_document(self):
        record = {
            "__name__": "abc",
            "name": "Acme",
            "updatedAt": SimpleNamespace(seconds=10, nanoseconds=0),
        }
        formatted = to_api_format(record, "__name__")
        self.assertEqual(formatted, {"id": "abc", "name": "Acme", "updatedAt": 10000})

    def test_relational_row(self):
        record = {"id": 7, "name": "Food", "createdAt": "2024-01-01T00:00:00+00:00"}
        formatted = to_api_format(record, "id")
        self.assertEqual(formatted["id"], "7")
        self.assertEqual(formatted["createdAt"], 1704067200000)

    def test_unparseable_timestamp_passes_through(self):
        formatted = to_api_format({"id": "x", "expiryDate": "soon"}, "id")
        self.assertEqual(formatted["expiryDate"], "soon")

    def test_input_is_not_mutated(self):
        record = {"_id": "x", "createdAt": datetime(2024, 1, 1, tzinfo=timezone.utc)}
        to_api_format(record)
        self.assertIn("_id", record)
        self.assertIsInstance(record["createdAt"], datetime)


class SortingTests(unittest.TestCase):
    def test_position_nulls_last_then_newest(self):
        records = [
            {"id": "old-none", "layoutPosition": None, "createdAt": 1},
            {"id": "two", "layoutPosition": 2, "createdAt": 5},
            {"id": "new-none", "createdAt": 9},
            {"id": "one-old", "layoutPosition": 1, "createdAt": 1},
            {"id": "one-new", "layoutPosition": 1, "createdAt": 3},
        ]
        ordered = [r["id"] for r in sort_by_position(records)]
        self.assertEqual(ordered, ["one-new", "one-old", "two", "new-none", "old-none"])

    def test_sort_by_field_keeps_missing_last(self):
        records = [{"name": "b"}, {}, {"name": "a"}]
        self.assertEqual(
            sort_by_field(records, "name", descending=True), [{"name": "b"}, {"name": "a"}, {}]
        )
        self.assertEqual(sort_by_field(records, "name"), [{"name": "a"}, {"name": "b"}, {}])

    def test_sort_by_order_tie_breaks_on_creation_time(self):
        records = [
            {"id": "late", "order": 0, "createdAt": 20},
            {"id": "second", "order": 1, "createdAt": 5},
            {"id": "early", "createdAt": 10},
        ]
        newest = [r["id"] for r in sort_by_order(records, newest_first=True)]
        oldest = [r["id"] for r in sort_by_order(records, newest_first=False)]
        self.assertEqual(newest, ["late", "early", "second"])
        self.assertEqual(oldest, ["early", "late", "second"])


if __name__ == "__main__":
    unittest.main()
