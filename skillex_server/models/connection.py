from enum import Enum

from motor.motor_asyncio import AsyncIOMotorDatabase


class ConnectionStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    blocked = "blocked"


# Any of these hides the other user from match previews.
EXCLUDING_STATUSES = [s.value for s in ConnectionStatus]


def _involving(uid: str) -> dict:
    return {"$or": [{"requester_id": uid}, {"addressee_id": uid}]}


class ConnectionStore:
    """Reads the ``connections`` collection."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db.connections

    async def are_connected_or_blocked(self, uid_a: str, uid_b: str) -> bool:
        doc = await self.collection.find_one(
            {
                "$or": [
                    {"requester_id": uid_a, "addressee_id": uid_b},
                    {"requester_id": uid_b, "addressee_id": uid_a},
                ],
                "status": {"$in": EXCLUDING_STATUSES},
            },
            {"_id": 0, "status": 1},
        )
        return doc is not None

    async def excluded_ids_for(self, uid: str) -> set[str]:
        """Every user sharing a pending, accepted or blocked connection with ``uid``."""
        cursor = self.collection.find(
            {**_involving(uid), "status": {"$in": EXCLUDING_STATUSES}},
            {"_id": 0, "requester_id": 1, "addressee_id": 1},
        )
        excluded = set()
        async for doc in cursor:
            other = doc["addressee_id"] if doc["requester_id"] == uid else doc["requester_id"]
            excluded.add(other)
        return excluded
