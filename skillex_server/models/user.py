import logging
from datetime import datetime
from enum import Enum
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)


# ── Enums ────────────────────────────────────────────────────────────────

class SkillKind(str, Enum):
    teach = "teach"
    learn = "learn"


class SkillLevel(str, Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"
    expert = "expert"


# ── Nested models ────────────────────────────────────────────────────────

class SkillRecord(BaseModel):
    """One skill entry as saved by the skills service; its tags share kind and level."""
    kind: SkillKind
    tags: list[str] = []
    level: SkillLevel | None = None

    @field_validator("kind", "level", mode="before")
    @classmethod
    def _lower(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("level", mode="wrap")
    @classmethod
    def _unknown_level(cls, v, handler):
        try:
            return handler(v)
        except ValidationError:
            return None


class UserProfile(BaseModel):
    """Profile document as stored in MongoDB. Read-only to the match service.

    Only ``id`` and ``handle`` are required. Any other field that does not
    parse falls back to its empty value, so the candidate is still scored
    on whatever signals remain.
    """
    id: str
    handle: str
    full_name: str = ""
    bio: str | None = None
    avatar_url: str | None = None
    location_city: str | None = None
    location_country: str | None = None
    timezone: str = "UTC"
    languages: list[str] = []
    last_active_at: datetime | None = None
    skills: list[SkillRecord] = []
    # Checked when the mask is built, not here.
    week_mask: Any = None

    @field_validator(
        "full_name", "bio", "avatar_url", "location_city", "location_country",
        "timezone", "languages", "last_active_at",
        mode="wrap",
    )
    @classmethod
    def _degrade(cls, v, handler, info):
        try:
            return handler(v)
        except ValidationError:
            logger.warning("ignoring unreadable %s value %r", info.field_name, v)
            return cls.model_fields[info.field_name].get_default()

    @field_validator("skills", mode="before")
    @classmethod
    def _readable_skills(cls, v):
        if not isinstance(v, list):
            return []
        records = []
        for raw in v:
            try:
                records.append(SkillRecord.model_validate(raw))
            except ValidationError:
                logger.warning("ignoring unreadable skill record %r", raw)
        return records

    @model_validator(mode="after")
    def _name_fallback(self) -> "UserProfile":
        if not self.full_name.strip():
            self.full_name = self.handle
        return self

    @property
    def location(self) -> str | None:
        parts = [p.strip() for p in (self.location_city, self.location_country) if p and p.strip()]
        return ", ".join(parts) or None


# ── Store ────────────────────────────────────────────────────────────────

class UserStore:
    """Reads profiles from the ``user_profiles`` collection."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db.user_profiles

    async def get(self, user_id: str) -> UserProfile | None:
        doc = await self.collection.find_one({"id": user_id}, {"_id": 0})
        if doc is None:
            return None
        return UserProfile(**doc)

    async def list_candidates(self, exclude_id: str, limit: int) -> tuple[list[UserProfile], bool]:
        """Fetch up to ``limit`` profiles other than ``exclude_id``.

        Returns ``(profiles, truncated)``; ``truncated`` is True when more
        profiles exist than were returned. Documents without a usable ``id``
        or ``handle`` are skipped.
        """
        cursor = self.collection.find({"id": {"$ne": exclude_id}}, {"_id": 0}).sort("id", 1)
        docs = await cursor.to_list(length=limit + 1)

        truncated = len(docs) > limit
        profiles = []
        for doc in docs[:limit]:
            try:
                profiles.append(UserProfile(**doc))
            except ValidationError as e:
                logger.warning("skipping unreadable profile %s: %s", doc.get("id"), e.error_count())
        return profiles, truncated
