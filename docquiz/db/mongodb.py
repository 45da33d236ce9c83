from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from docquiz.core.config import settings
import logging

logger = logging.getLogger(__name__)

DOCUMENTS_COLLECTION = "documents"
QUIZZES_COLLECTION = "quizzes"
ATTEMPTS_COLLECTION = "quiz_attempts"


class MongoDB:
    client: AsyncIOMotorClient = None


mongodb = MongoDB()


async def connect_to_mongo():
    """Connect to MongoDB and test the connection"""
    try:
        mongodb.client = AsyncIOMotorClient(settings.mongodb_url)
        # Test connection
        await mongodb.client.admin.command('ping')
        logger.info(f"✓ Connected to MongoDB at {settings.mongodb_url}")
    except Exception as e:
        logger.error(f"✗ Failed to connect to MongoDB: {e}")
        raise


async def close_mongo_connection():
    """Close MongoDB connection"""
    if mongodb.client:
        mongodb.client.close()
        logger.info("✓ Closed MongoDB connection")


def get_database() -> AsyncIOMotorDatabase:
    """Get the database instance"""
    return mongodb.client[settings.database_name]


async def ensure_indexes(db: AsyncIOMotorDatabase):
    """Create the indexes the services query on"""
    await db[DOCUMENTS_COLLECTION].create_index("documentId", unique=True)
    await db[DOCUMENTS_COLLECTION].create_index(
        [("ownerId", ASCENDING), ("createdAt", DESCENDING)]
    )
    await db[QUIZZES_COLLECTION].create_index("quizId", unique=True)
    await db[QUIZZES_COLLECTION].create_index(
        [("documentId", ASCENDING), ("ownerId", ASCENDING)]
    )
    await db[ATTEMPTS_COLLECTION].create_index("attemptId", unique=True)
    await db[ATTEMPTS_COLLECTION].create_index(
        [("userId", ASCENDING), ("quizId", ASCENDING), ("status", ASCENDING)]
    )
    # At most one in-progress attempt per (user, quiz)
    await db[ATTEMPTS_COLLECTION].create_index(
        [("userId", ASCENDING), ("quizId", ASCENDING)],
        unique=True,
        partialFilterExpression={"status": "in_progress"},
        name="one_in_progress_attempt",
    )
    logger.info("✓ MongoDB indexes ensured")
