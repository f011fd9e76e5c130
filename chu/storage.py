"""Document store service backed by MongoDB."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from bson import ObjectId
from bson.errors import BSONError
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import OperationFailure, PyMongoError

from chu.config import (
    HEART_RATES_COLLECTION,
    USER_IDENTITY_FIELDS,
    USER_PROFILE_FIELDS,
    USERS_COLLECTION,
)
from chu.errors import StoreConnectionError, StoreOperationError, ValidationError
from chu.validation import non_string_fields

logger = logging.getLogger(__name__)

# Driver errors plus values BSON cannot encode (e.g. ints wider than 8 bytes)
STORE_ERRORS = (PyMongoError, BSONError, OverflowError)

DUPLICATE_KEY = 11000


@dataclass(frozen=True)
class UpsertResult:
    """Outcome of an upsert-by-identity on the users collection."""

    user_id: ObjectId
    created: bool


class DocumentStore:
    """Handles reads and writes of users and heart-rate readings in MongoDB."""

    def __init__(self, client: MongoClient, database_name: str):
        """Wrap an existing client. Call connect() before serving requests."""
        self.client = client
        self.db: Database = client[database_name]

    @classmethod
    def from_url(
        cls,
        connection_string: Optional[str],
        database_name: str,
        server_selection_timeout_ms: int = 5000,
    ) -> "DocumentStore":
        """Build a store for `connection_string` without contacting the server."""
        if not connection_string:
            raise StoreConnectionError("CONNECTION_STRING is not set")
        try:
            client: MongoClient = MongoClient(
                connection_string,
                serverSelectionTimeoutMS=server_selection_timeout_ms,
            )
        except (PyMongoError, ValueError) as e:
            raise StoreConnectionError(f"Invalid connection string: {e}") from e
        return cls(client, database_name)

    @property
    def database_name(self) -> str:
        return self.db.name

    @property
    def users(self) -> Collection:
        return self.db[USERS_COLLECTION]

    @property
    def heart_rates(self) -> Collection:
        return self.db[HEART_RATES_COLLECTION]

    def connect(self) -> None:
        """
        Verify the server answers and prepare the users identity index.

        Raises StoreConnectionError if the server cannot be reached, or if
        existing users share a username and password so the unique index
        cannot be built.
        """
        try:
            self.client.admin.command("ping")
        except PyMongoError as e:
            raise StoreConnectionError(f"Error connecting to MongoDB: {e}") from e

        try:
            self.users.create_index(
                [(field, ASCENDING) for field in USER_IDENTITY_FIELDS],
                unique=True,
                name="user_identity",
            )
        except PyMongoError as e:
            if isinstance(e, OperationFailure) and e.code == DUPLICATE_KEY:
                logger.error(
                    "Collection %s holds several users with the same username and password; "
                    "merge or remove the duplicates before starting the server",
                    USERS_COLLECTION,
                )
                raise StoreConnectionError(
                    f"Cannot create unique user identity index, duplicate users exist: {e}"
                ) from e
            raise StoreConnectionError(f"Error preparing users collection: {e}") from e
        logger.info("Connected to MongoDB database %s", self.database_name)

    def close(self) -> None:
        self.client.close()
        logger.info("MongoDB connection closed")

    def dump_collections(self, limit: Optional[int] = None) -> Dict[str, List[Dict[str, Any]]]:
        """
        Fetch the documents of every collection in the database.

        Without `limit` every document is read into memory, once per
        collection per call.
        """
        try:
            collections: Dict[str, List[Dict[str, Any]]] = {}
            for name in self.db.list_collection_names():
                cursor = self.db[name].find()
                if limit is not None:
                    cursor = cursor.limit(limit)
                collections[name] = list(cursor)
            return collections
        except STORE_ERRORS as e:
            raise StoreOperationError("Error fetching collections data") from e

    def list_users(self) -> List[Dict[str, Any]]:
        try:
            return list(self.users.find())
        except STORE_ERRORS as e:
            raise StoreOperationError("Error fetching users data") from e

    def list_heart_rates(self) -> List[Dict[str, Any]]:
        try:
            return list(self.heart_rates.find())
        except STORE_ERRORS as e:
            raise StoreOperationError("Error fetching heartrates data") from e

    def upsert_user(self, user: Mapping[str, Any]) -> UpsertResult:
        """
        Insert `user`, or overwrite the profile fields of the user with the
        same username and password.

        Runs as a single find_one_and_update so the lookup and the write
        cannot interleave with another request. On insert the whole record
        is stored under a freshly generated _id; on update only the profile
        fields that were supplied are written and the _id is kept.
        """
        invalid = non_string_fields(user, USER_IDENTITY_FIELDS)
        if invalid:
            raise ValidationError([], invalid)

        identity = {field: user[field] for field in USER_IDENTITY_FIELDS}
        profile = {field: user[field] for field in USER_PROFILE_FIELDS if field in user}
        new_id = ObjectId()
        on_insert: Dict[str, Any] = {
            key: value
            for key, value in user.items()
            if key not in identity and key not in profile and key != "_id"
        }
        on_insert["_id"] = new_id

        update: Dict[str, Any] = {"$setOnInsert": on_insert}
        if profile:
            update["$set"] = profile

        try:
            before = self.users.find_one_and_update(
                identity,
                update,
                upsert=True,
                return_document=ReturnDocument.BEFORE,
            )
        except STORE_ERRORS as e:
            raise StoreOperationError("Internal Server Error") from e

        if before is None:
            logger.info("Inserted user %s with id %s", identity["username"], new_id)
            return UpsertResult(user_id=new_id, created=True)

        logger.info("Updated user %s with id %s", identity["username"], before["_id"])
        return UpsertResult(user_id=before["_id"], created=False)

    def insert_heart_rate(self, record: Mapping[str, Any]) -> ObjectId:
        """Append a heart-rate reading. Readings are never deduplicated."""
        document = dict(record)
        try:
            result = self.heart_rates.insert_one(document)
        except STORE_ERRORS as e:
            raise StoreOperationError("Internal Server Error") from e
        logger.info(
            "Recorded heart rate for user %s with id %s", record.get("userId"), result.inserted_id
        )
        return result.inserted_id
