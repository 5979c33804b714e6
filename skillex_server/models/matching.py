from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, StrictBool, field_validator

from skillex_server.models.user import SkillLevel


class SortKey(str, Enum):
    match_score = "match_score"
    last_active = "last_active"
    name = "name"
    location = "location"


# ── Request ─────────────────────────────────────────────────────────────


class MatchFilters(BaseModel):
    skills: list[str] | None = None
    location: str | None = None
    skill_level: SkillLevel | None = None
    availability: str | None = None
    search: str | None = None

    @field_validator("skills")
    @classmethod
    def _no_blank_skills(cls, v: list[str] | None) -> list[str] | None:
        if v is not None and any(not s.strip() for s in v):
            raise ValueError("skill tags must not be blank")
        return v

    @field_validator("skill_level", mode="before")
    @classmethod
    def _any_level(cls, v):
        # The filter UI sends "any" for no level constraint.
        if isinstance(v, str) and v.strip().lower() in ("", "any"):
            return None
        return v


class WeightsIn(BaseModel):
    """Per-request override of the scoring weights.

    Omitted terms keep their configured weight; the merged set is normalized
    to sum 1.
    """
    skill: float | None = Field(None, ge=0.0)
    availability: float | None = Field(None, ge=0.0)
    recency: float | None = Field(None, ge=0.0)
    location: float | None = Field(None, ge=0.0)


class MatchRequest(BaseModel):
    """Body of POST /v1/match/preview. The requester comes from the auth context."""
    filters: MatchFilters | None = None
    limit: int = Field(12, ge=1, le=100)
    offset: int = Field(0, ge=0)
    sort_by: SortKey = SortKey.match_score
    weights: WeightsIn | None = None
    # Preview against an unsaved schedule; must be exactly 168 booleans.
    availability_mask: list[StrictBool] | None = None


# ── Response ────────────────────────────────────────────────────────────


class MatchUser(BaseModel):
    id: str
    handle: str
    full_name: str
    bio: str | None = None
    avatar_url: str | None = None
    location_city: str | None = None
    location_country: str | None = None
    timezone: str


class MatchSkills(BaseModel):
    teach: list[str]
    learn: list[str]
    overlap: list[str]
    teach_to_learn: list[str]
    learn_to_teach: list[str]
    bidirectional: bool


class MatchAvailability(BaseModel):
    overlap: int
    percentage: float


class MatchCandidate(BaseModel):
    user: MatchUser
    skills: MatchSkills
    availability: MatchAvailability
    score: float
    reason: str
    last_active: datetime | None = None
    availability_summary: str | None = None


class MatchPreviewResponse(BaseModel):
    matches: list[MatchCandidate]
    total: int
    has_more: bool
    available_skills: list[str] = []
    availability_unset: bool = False
    truncated: bool = False


class AvailableSkills(BaseModel):
    skills: list[str]


class HealthStatus(BaseModel):
    ok: bool
    version: str
    timestamp: datetime
