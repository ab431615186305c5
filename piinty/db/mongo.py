import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from piinty.core.config import settings

logger = logging.getLogger(__name__)


class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URL, tz_aware=True)
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    await create_indexes()
    logger.info(f"Connected to MongoDB: {settings.DATABASE_NAME}")

async def close_mongo_connection():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
        logger.info("Disconnected from MongoDB")

async def create_indexes():
    """Create database indexes."""
    # One membership per user per group
    await mongodb.db["group_members"].create_index(
        [("group_id", 1), ("user_id", 1)], unique=True
    )
    await mongodb.db["group_members"].create_index("user_id")

    await mongodb.db["profiles"].create_index("phone_number", unique=True, sparse=True)

    # Buckets are read oldest first
    await mongodb.db["pints"].create_index(
        [("group_id", 1), ("from_user_id", 1), ("to_user_id", 1), ("created_at", 1)]
    )

def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return mongodb.db
