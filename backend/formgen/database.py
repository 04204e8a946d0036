import logging

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING

from formgen.config import settings

logger = logging.getLogger(__name__)

client = AsyncIOMotorClient(settings.MONGO_URI)
db = client[settings.DB_NAME]

forms_collection = db.forms
fields_collection = db.form_fields
submissions_collection = db.submissions


async def ensure_indexes() -> None:
    """Create the lookup indexes the routers rely on."""
    await fields_collection.create_index([("formId", ASCENDING), ("position", ASCENDING)])
    await submissions_collection.create_index([("formId", ASCENDING), ("submittedAt", DESCENDING)])
    await forms_collection.create_index("publicSlug", unique=True, sparse=True)
    logger.info("MongoDB indexes ensured on %s", settings.DB_NAME)


def convert_objectid_to_str(doc: dict) -> dict:
    """Convert MongoDB ObjectId fields to strings for JSON serialization."""
    if doc is None:
        return doc

    if isinstance(doc, dict):
        result = {}
        for key, value in doc.items():
            if isinstance(value, ObjectId):
                result[key] = str(value)
            elif isinstance(value, dict):
                result[key] = convert_objectid_to_str(value)
            elif isinstance(value, list):
                result[key] = [convert_objectid_to_str(item) if isinstance(item, dict) else (str(item) if isinstance(item, ObjectId) else item) for item in value]
            else:
                result[key] = value
        return result
    return doc


def with_public_id(doc: dict) -> dict:
    """Expose Mongo's `_id` as `id`."""
    doc = convert_objectid_to_str(doc)
    doc["id"] = doc.pop("_id")
    return doc
