"""In-memory stand-ins for the stores and the Mongo collections behind them,
plus profile builders for tests."""

import asyncio
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Iterable

from pymongo.errors import PyMongoError

from skillex_server.models.user import SkillKind, SkillLevel, SkillRecord, UserProfile
from skillex_server.services.availability import SLOTS

NOW = datetime(2026, 10, 5, 12, 0, tzinfo=timezone.utc)


def week_mask(hours: Iterable[int]) -> list[bool]:
    on = set(hours)
    return [i in on for i in range(SLOTS)]


def make_user(
    uid: str,
    teach: Iterable[str] = (),
    learn: Iterable[str] = (),
    hours: Iterable[int] | None = None,
    city: str | None = None,
    country: str | None = None,
    active_days_ago: float | None = None,
    level: SkillLevel | None = None,
    handle: str | None = None,
    full_name: str | None = None,
    bio: str | None = None,
    raw_mask: list | None = None,
) -> UserProfile:
    skills = []
    if teach:
        skills.append(SkillRecord(kind=SkillKind.teach, tags=list(teach), level=level))
    if learn:
        skills.append(SkillRecord(kind=SkillKind.learn, tags=list(learn), level=level))

    mask = raw_mask
    if mask is None and hours is not None:
        mask = week_mask(hours)

    return UserProfile(
        id=uid,
        handle=handle or uid,
        full_name=full_name or uid.title(),
        bio=bio,
        location_city=city,
        location_country=country,
        timezone="UTC",
        last_active_at=None if active_days_ago is None else NOW - timedelta(days=active_days_ago),
        skills=skills,
        week_mask=mask,
    )


class FakeUserStore:
    def __init__(self, profiles: Iterable[UserProfile], fail: bool = False, delay: float = 0.0):
        self.profiles = {p.id: p for p in profiles}
        self.fail = fail
        self.delay = delay
        self.calls = 0

    async def _io(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise PyMongoError("connection refused")

    async def get(self, user_id: str) -> UserProfile | None:
        await self._io()
        return self.profiles.get(user_id)

    async def list_candidates(self, exclude_id: str, limit: int) -> tuple[list[UserProfile], bool]:
        await self._io()
        others = [p for uid, p in sorted(self.profiles.items()) if uid != exclude_id]
        return others[:limit], len(others) > limit


class FakeConnectionStore:
    def __init__(self, pairs: Iterable[tuple[str, str]] = ()):
        self.pairs = {frozenset(p) for p in pairs}

    async def are_connected_or_blocked(self, uid_a: str, uid_b: str) -> bool:
        return frozenset((uid_a, uid_b)) in self.pairs

    async def excluded_ids_for(self, uid: str) -> set[str]:
        return {other for pair in self.pairs if uid in pair for other in pair if other != uid}


# ── Collection-level fakes, for driving the real stores ──────────────────

def _matches(doc: dict, query: dict) -> bool:
    for key, cond in query.items():
        if key == "$or":
            if not any(_matches(doc, q) for q in cond):
                return False
        elif isinstance(cond, dict) and "$ne" in cond:
            if doc.get(key) == cond["$ne"]:
                return False
        elif isinstance(cond, dict) and "$in" in cond:
            if doc.get(key) not in cond["$in"]:
                return False
        elif doc.get(key) != cond:
            return False
    return True


class FakeCursor:
    def __init__(self, docs):
        self.docs = list(docs)

    def sort(self, key, direction):
        self.docs.sort(key=lambda d: (d.get(key) is None, d.get(key) or ""), reverse=direction < 0)
        return self

    async def to_list(self, length):
        return self.docs[:length]

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for doc in self.docs:
            yield doc


class FakeCollection:
    """Supports the equality, ``$ne``, ``$in`` and ``$or`` queries the stores issue."""

    def __init__(self, docs):
        self.docs = docs

    async def find_one(self, query, projection=None):
        return next((dict(d) for d in self.docs if _matches(d, query)), None)

    def find(self, query, projection=None):
        return FakeCursor(dict(d) for d in self.docs if _matches(d, query))


def fake_db(profiles=(), connections=()):
    return SimpleNamespace(
        user_profiles=FakeCollection(list(profiles)),
        connections=FakeCollection(list(connections)),
    )


def profile_doc(uid: str, **extra) -> dict:
    return {"id": uid, "handle": uid, "full_name": uid.title(), **extra}
