from pymongo import MongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from bson import ObjectId
from bson.errors import InvalidId
from typing import Any, Dict, Optional
from core.config import settings
import logging

logger = logging.getLogger(__name__)


class MongoDB:
    client: MongoClient = None
    db: Database = None

    def connect_to_database(self):
        try:
            self.client = MongoClient(settings.MONGO_URI)
            self.db = self.client[settings.MONGO_DB]
            logger.info("Connected to MongoDB")
            return self.db
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise e

    def close_database_connection(self):
        if self.client:
            self.client.close()
            logger.info("Closed MongoDB connection")

    def get_collection(self, collection_name: str) -> Collection:
        if self.db is None:
            self.connect_to_database()
        return self.db[collection_name]


mongodb = MongoDB()


def to_object_id(value: str) -> Optional[ObjectId]:
    """Parse a hex id, returning None when it is not a valid ObjectId."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def serialize(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Convert the document's ObjectId to its string form for the response models."""
    if document is not None and "_id" in document:
        document["_id"] = str(document["_id"])
    return document


# Collections
def get_profiles_collection():
    return mongodb.get_collection("profiles")


def get_restaurants_collection():
    return mongodb.get_collection("restaurants")


def get_menu_items_collection():
    return mongodb.get_collection("menu_items")


def get_orders_collection():
    return mongodb.get_collection("orders")


def get_carts_collection():
    return mongodb.get_collection("carts")


def get_addresses_collection():
    return mongodb.get_collection("addresses")


def get_reviews_collection():
    return mongodb.get_collection("reviews")
