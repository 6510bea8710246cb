"""MongoDB access for the GroupBuy service.

``Store`` wraps one pymongo ``Database`` and names the collections the
service uses. The application factory creates it and hands it to request
handlers; tests pass a mongomock database instead of a live server.
"""

import logging
from typing import Tuple

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from groupbuy.config import MongoSettings

# Configure module logger
logger = logging.getLogger(__name__)


class Store:
    """Collections of the marketplace document store."""

    def __init__(self, database: Database):
        self.db = database

    @property
    def users(self) -> Collection:
        return self.db["users"]

    @property
    def groups(self) -> Collection:
        return self.db["groups"]

    @property
    def requests(self) -> Collection:
        return self.db["requests"]

    @property
    def suppliers(self) -> Collection:
        return self.db["suppliers"]

    @property
    def chats(self) -> Collection:
        return self.db["chats"]

    def ensure_indexes(self) -> None:
        """Create the indexes lookups and uniqueness rules rely on."""
        self.users.create_index([("email", ASCENDING)], unique=True)
        self.users.create_index([("phone", ASCENDING)], unique=True)
        self.groups.create_index([("status", ASCENDING), ("category", ASCENDING)])
        self.groups.create_index([("createdAt", DESCENDING)])
        self.groups.create_index([("members.user", ASCENDING)])
        self.requests.create_index([("requester", ASCENDING), ("createdAt", DESCENDING)])
        self.chats.create_index([("user", ASCENDING), ("isActive", ASCENDING)])
        logger.info("Database indexes ensured", extra={"database": self.db.name})

    def ping(self) -> bool:
        """Return True when the server answers a ping."""
        try:
            self.db.command("ping")
            return True
        except PyMongoError as e:
            logger.warning(f"Database ping failed: {e}")
            return False


def connect(settings: MongoSettings) -> Tuple[MongoClient, Store]:
    """Create a client for the configured server and wrap its database.

    pymongo connects lazily, so this does not block on an unreachable server.

    Args:
        settings: Connection settings.

    Returns:
        Tuple of the client (to close on shutdown) and the store.
    """
    logger.info(f"Connecting to MongoDB database '{settings.database}'")
    client = MongoClient(
        settings.url,
        serverSelectionTimeoutMS=settings.server_selection_timeout_ms,
    )
    return client, Store(client[settings.database])
