import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from skillex_server.config import Settings

logger = logging.getLogger(__name__)

client: AsyncIOMotorClient | None = None
db: AsyncIOMotorDatabase | None = None


async def connect_db(settings: Settings) -> AsyncIOMotorDatabase:
    global client, db
    client = AsyncIOMotorClient(settings.mongodb_url)
    db = client[settings.mongodb_db]

    # The profile and connection collaborators own these collections; the
    # match service only needs the lookups it performs to be indexed.
    await db.user_profiles.create_index("id", unique=True)
    await db.connections.create_index("requester_id")
    await db.connections.create_index("addressee_id")

    logger.info("connected to MongoDB database %s", settings.mongodb_db)
    return db


async def close_db() -> None:
    global client
    if client:
        client.close()


def get_db() -> AsyncIOMotorDatabase:
    assert db is not None, "Database not connected. Call connect_db() first."
    return db
