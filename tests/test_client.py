import unittest
from datetime import datetime
from typing import List, Optional
from unittest.mock import MagicMock, patch

from pydantic import BaseModel

from mongo_common.client import DocumentClient, new_client
from mongo_common.config import ClientConfig
from mongo_common.exceptions import (
    ClientNotInitializedError,
    DocumentNotFoundError,
    SerializationError,
)
from mongo_common.models import BaseDocument


class DummyDate(BaseDocument):
    collection_name = "dummyDate"

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    dummy_stupid_field: str = ""
    tags: List[str] = []


class DatePatch(BaseModel):
    start: Optional[datetime] = None
    dummy_stupid_field: Optional[str] = None


CONFIG = ClientConfig(host="localhost", port=27017, database="app")


class DocumentClientTestCase(unittest.TestCase):
    def setUp(self):
        self.collection = MagicMock()
        self.collection.name = "dummyDate"
        self.collection.find_one_and_update.return_value = {"_id": "abc"}
        self.mongo_client = MagicMock()
        self.mongo_client.__getitem__.return_value.__getitem__.return_value = self.collection

        patcher = patch("mongo_common.client.get_client", return_value=self.mongo_client)
        self.get_client = patcher.start()
        self.addCleanup(patcher.stop)

        self.client = DocumentClient(CONFIG)
        self.client.connect()


class TestConnection(DocumentClientTestCase):
    def test_uri_is_generated(self):
        self.assertEqual(self.client.uri, "mongodb://localhost:27017/")
        self.get_client.assert_called_once_with("mongodb://localhost:27017/")

    def test_collection_named_after_document(self):
        self.client.get_collection(DummyDate)

        self.mongo_client.__getitem__.assert_called_with("app")
        self.mongo_client.__getitem__.return_value.__getitem__.assert_called_with("dummyDate")

    def test_health_check_pings(self):
        self.client.health_check()

        self.mongo_client.admin.command.assert_called_once_with("ping")

    def test_disconnect(self):
        with patch("mongo_common.client.close_client") as close_client:
            self.client.disconnect()

        close_client.assert_called_once_with("mongodb://localhost:27017/")
        with self.assertRaises(ClientNotInitializedError):
            self.client.get_collection(DummyDate)

    def test_operations_require_connection(self):
        client = DocumentClient(CONFIG)

        with self.assertRaises(ClientNotInitializedError):
            client.health_check()
        with self.assertRaises(ClientNotInitializedError):
            client.disconnect()
        with self.assertRaises(ClientNotInitializedError):
            client.persist(DummyDate())

    def test_generate_uuid(self):
        self.assertNotEqual(self.client.generate_uuid(), self.client.generate_uuid())
        self.assertEqual(self.client.generate_uuid().version, 4)

    def test_new_client_connects(self):
        client = new_client(CONFIG, timeout=2.5)

        self.assertIs(client.client, self.mongo_client)
        self.assertEqual(client.timeout, 2.5)


class TestWrites(DocumentClientTestCase):
    def test_persist_assigns_identity(self):
        doc = DummyDate(dummy_stupid_field="pato")

        self.client.persist(doc)

        self.assertTrue(doc.id)
        self.assertEqual(doc.version, 1)
        self.assertIsNotNone(doc.created_at)
        inserted = self.collection.insert_one.call_args[0][0]
        self.assertEqual(inserted["_id"], doc.id)
        self.assertEqual(inserted["dummyStupidField"], "pato")

    def test_persist_keeps_existing_id(self):
        doc = DummyDate(_id="fixed")

        self.client.persist(doc)

        self.assertEqual(doc.id, "fixed")

    def test_replace(self):
        doc = DummyDate(_id="abc", version=2)

        self.client.replace(doc)

        self.assertEqual(doc.version, 3)
        filter_, replacement = self.collection.find_one_and_replace.call_args[0]
        self.assertEqual(filter_, {"_id": "abc"})
        self.assertEqual(replacement["version"], 3)

    def test_replace_missing_document(self):
        self.collection.find_one_and_replace.return_value = None

        with self.assertRaises(DocumentNotFoundError) as ctx:
            self.client.replace(DummyDate(_id="abc"))

        self.assertEqual(ctx.exception.document_id, "abc")
        self.assertEqual(ctx.exception.collection, "dummyDate")

    def test_replace_or_persist_falls_back_to_insert(self):
        self.collection.find_one_and_replace.return_value = None

        doc = DummyDate(_id="abc")

        self.client.replace_or_persist(doc)

        self.assertEqual(doc.version, 1)
        inserted = self.collection.insert_one.call_args[0][0]
        self.assertEqual(inserted["_id"], "abc")
        self.assertEqual(inserted["version"], 1)

    def test_replace_or_persist_replaces(self):
        doc = DummyDate(_id="abc", version=4)

        self.client.replace_or_persist(doc)

        self.assertEqual(doc.version, 5)
        self.collection.insert_one.assert_not_called()

    def test_delete(self):
        self.collection.delete_one.return_value.deleted_count = 1

        self.client.delete(DummyDate(_id="abc"))

        self.collection.delete_one.assert_called_once_with({"_id": "abc"})

    def test_delete_missing_document(self):
        self.collection.delete_one.return_value.deleted_count = 0

        with self.assertRaises(DocumentNotFoundError):
            self.client.delete(DummyDate(_id="abc"))


class TestUpdate(DocumentClientTestCase):
    def test_update_sets_flattened_paths(self):
        start = datetime(2024, 5, 1)
        self.collection.find_one_and_update.return_value = {
            "_id": "abc",
            "start": start,
            "dummyStupidField": "pata",
            "version": 2,
        }
        doc = DummyDate(_id="abc")

        updated = self.client.update(doc, "abc", DatePatch(start=start, dummy_stupid_field="pata"))

        filter_, update = self.collection.find_one_and_update.call_args[0]
        self.assertEqual(filter_, {"_id": "abc"})
        self.assertEqual(update["$inc"], {"version": 1})
        fields = update["$set"]
        self.assertEqual(fields["start"], start)
        self.assertEqual(fields["dummyStupidField"], "pata")
        self.assertIsInstance(fields["updatedAt"], datetime)
        self.assertEqual(set(fields), {"start", "dummyStupidField", "updatedAt"})
        self.assertIsInstance(updated, DummyDate)
        self.assertEqual(updated.version, 2)

    def test_update_with_document_patch(self):
        patch_doc = DummyDate(_id="other", tags=["a", "b"], version=7)

        self.client.update(DummyDate, "abc", patch_doc)

        fields = self.collection.find_one_and_update.call_args[0][1]["$set"]
        self.assertNotIn("_id", fields)
        self.assertNotIn("version", fields)
        self.assertEqual(fields["tags.0"], "a")
        self.assertEqual(fields["tags.1"], "b")

    def test_update_with_generic_document(self):
        self.client.update(DummyDate, "abc", {"end": None, "_id": "x"})

        fields = self.collection.find_one_and_update.call_args[0][1]["$set"]
        self.assertIsNone(fields["end"])
        self.assertNotIn("_id", fields)

    def test_update_unknown_id(self):
        self.collection.find_one_and_update.return_value = None

        self.assertIsNone(self.client.update(DummyDate, "missing", {"end": None}))

    def test_unencodable_patch_writes_nothing(self):
        with self.assertRaises(SerializationError):
            self.client.update(DummyDate, "abc", {"tags": {"a", "b"}})

        self.collection.find_one_and_update.assert_not_called()


class TestReads(DocumentClientTestCase):
    def test_find_one(self):
        self.collection.find_one.return_value = {"_id": "abc", "dummyStupidField": "pato"}

        found = self.client.find_one(DummyDate, {"dummyStupidField": "pato"})

        self.collection.find_one.assert_called_once_with({"dummyStupidField": "pato"})
        self.assertEqual(found.dummy_stupid_field, "pato")

    def test_find_one_missing(self):
        self.collection.find_one.return_value = None

        self.assertIsNone(self.client.find_one_by_id(DummyDate, "abc"))
        self.collection.find_one.assert_called_once_with({"_id": "abc"})

    def test_find_many(self):
        cursor = MagicMock()
        cursor.sort.return_value = cursor
        cursor.skip.return_value = cursor
        cursor.limit.return_value = cursor
        cursor.__iter__.return_value = iter([{"_id": "a"}, {"_id": "b"}])
        self.collection.find.return_value = cursor

        found = self.client.find_many(
            DummyDate, {}, sort=[("start", -1)], skip=5, limit=2
        )

        cursor.sort.assert_called_once_with([("start", -1)])
        cursor.skip.assert_called_once_with(5)
        cursor.limit.assert_called_once_with(2)
        self.assertEqual([doc.id for doc in found], ["a", "b"])


if __name__ == "__main__":
    unittest.main()
