"""Tests for storage functionality."""

from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from bson.errors import InvalidDocument
from pymongo import MongoClient
from pymongo.errors import OperationFailure

from chu.errors import StoreConnectionError, StoreOperationError, ValidationError
from chu.storage import DocumentStore


def test_upsert_inserts_full_record(store, user_payload):
    """Test that a new identity inserts every supplied field."""
    user_payload["favouriteColour"] = "teal"
    result = store.upsert_user(user_payload)

    assert result.created is True
    stored = store.users.find_one({"_id": result.user_id})
    assert stored is not None
    assert stored["username"] == "a"
    assert stored["clientId"] == "c1"
    assert stored["favouriteColour"] == "teal"


def test_upsert_updates_in_place(store, user_payload):
    """Test that a known identity keeps its id and gets the new profile."""
    first = store.upsert_user(user_payload)
    second = store.upsert_user({**user_payload, "age": 31, "memberSince": "2019"})

    assert second.created is False
    assert second.user_id == first.user_id
    assert store.users.count_documents({}) == 1
    stored = store.users.find_one({"_id": first.user_id})
    assert stored["age"] == 31
    assert stored["memberSince"] == "2019"


def test_upsert_does_not_clear_absent_fields(store, user_payload):
    """Test that fields left out of an update keep their stored value."""
    store.upsert_user(user_payload)
    partial = {k: v for k, v in user_payload.items() if k != "height"}
    partial["weight"] = 58

    store.upsert_user(partial)

    stored = store.users.find_one({"username": "a"})
    assert stored["height"] == 170
    assert stored["weight"] == 58


def test_upsert_ignores_client_supplied_id(store, user_payload):
    """Test that the store assigns the id of a new user."""
    forced = ObjectId()
    result = store.upsert_user({**user_payload, "_id": forced})
    assert result.user_id != forced


def test_insert_heart_rate_copies_record(store):
    """Test that inserting a reading leaves the caller's mapping untouched."""
    reading = {"userId": "u1", "rate": 90, "timestamp": "2024-01-15T10:00:00Z"}
    inserted = store.insert_heart_rate(reading)

    assert "_id" not in reading
    assert store.heart_rates.find_one({"_id": inserted})["rate"] == 90


def test_dump_collections(store, user_payload):
    """Test dumping every collection, with and without a limit."""
    store.upsert_user(user_payload)
    for rate in (60, 70, 80):
        store.insert_heart_rate({"userId": "u1", "rate": rate, "timestamp": "t"})

    dump = store.dump_collections()
    assert set(dump) == {"users", "heartrates"}
    assert [r["rate"] for r in dump["heartrates"]] == [60, 70, 80]

    limited = store.dump_collections(limit=1)
    assert len(limited["heartrates"]) == 1
    assert len(limited["users"]) == 1


def test_database_name(store):
    assert store.database_name == "test_chu"


def test_operation_errors_are_wrapped(store, user_payload):
    """Test that driver errors surface as StoreOperationError."""
    store.db = MagicMock()
    collection = store.db.__getitem__.return_value
    collection.insert_one.side_effect = OperationFailure("write failed")
    collection.find_one_and_update.side_effect = OperationFailure("write failed")

    with pytest.raises(StoreOperationError) as exc_info:
        store.insert_heart_rate({"userId": "u1", "rate": 60, "timestamp": "t"})
    assert isinstance(exc_info.value.__cause__, OperationFailure)

    with pytest.raises(StoreOperationError):
        store.upsert_user(user_payload)


def test_from_url_requires_connection_string():
    with pytest.raises(StoreConnectionError):
        DocumentStore.from_url(None, "test_chu")


def test_from_url_rejects_malformed_connection_string():
    with pytest.raises(StoreConnectionError):
        DocumentStore.from_url("mongodb://host:notaport", "test_chu")


def test_connect_unreachable_server():
    """Test that an unreachable server fails the connection check."""
    client = MongoClient("mongodb://127.0.0.1:1", serverSelectionTimeoutMS=100, connect=False)
    store = DocumentStore(client, "test_chu")
    try:
        with pytest.raises(StoreConnectionError):
            store.connect()
    finally:
        store.close()


def test_connect_reports_duplicate_users(caplog):
    """Test that existing duplicate identities block startup with an explicit reason."""
    client = MagicMock()
    store = DocumentStore(client, "test_chu")
    store.users.create_index.side_effect = OperationFailure(
        "E11000 duplicate key error collection: test_chu.users", code=11000
    )

    with pytest.raises(StoreConnectionError) as exc_info:
        store.connect()

    assert "duplicate users exist" in str(exc_info.value)
    assert "same username and password" in caplog.text


def test_upsert_rejects_non_string_identity(store, user_payload):
    """Test that the resolver never turns an identity into a query document."""
    store.upsert_user(user_payload)

    with pytest.raises(ValidationError) as exc_info:
        store.upsert_user({**user_payload, "username": {"$ne": None}, "clientId": "evil"})

    assert exc_info.value.invalid == ["username"]
    assert store.users.find_one({"username": "a"})["clientId"] == "c1"


@pytest.mark.parametrize(
    "error", [OverflowError("8-byte ints"), InvalidDocument("cannot encode object")]
)
def test_encoding_errors_are_wrapped(store, error):
    """Test that values BSON cannot encode surface as StoreOperationError."""
    store.db = MagicMock()
    store.db.__getitem__.return_value.insert_one.side_effect = error

    with pytest.raises(StoreOperationError) as exc_info:
        store.insert_heart_rate({"userId": "u1", "rate": 2**70, "timestamp": "t"})
    assert exc_info.value.__cause__ is error
