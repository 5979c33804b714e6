"""Score a requester/candidate pair and explain the score in one sentence.

score = 100 * (w_skill * skill + w_availability * availability
               + w_recency * recency + w_location * location)

with the weights normalized to sum to 1. Every term is in [0, 1]:

- skill: complementary tags over the requester's own tag count, boosted by
  1.25 (capped at 1) when both sides can teach each other
- availability: overlap percentage / 100
- recency: exponential decay on days since the candidate was last active
- location: 1.0 same city, 0.5 same country, else 0
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone

from skillex_server.errors import InvalidRequest
from skillex_server.models.user import UserProfile
from skillex_server.services.availability import Overlap
from skillex_server.services.skills import SkillIndex, SkillMatch, norm

BIDIRECTIONAL_BOOST = 1.25
SCORE_PRECISION = 2

# Tie-break order when two terms contribute equally to the reason.
TERM_PRIORITY = ("skill", "availability", "location", "recency")

FALLBACK_REASON = "Explore their profile to see if you could swap skills."


@dataclass
class Weights:
    skill: float = 0.5
    availability: float = 0.3
    recency: float = 0.1
    location: float = 0.1

    def normalized(self) -> "Weights":
        values = (self.skill, self.availability, self.recency, self.location)
        if any(v < 0 for v in values):
            raise InvalidRequest("weights must not be negative")
        total = sum(values)
        if total == 0.0:
            raise InvalidRequest("All weights cannot be zero")
        return Weights(
            skill=self.skill / total,
            availability=self.availability / total,
            recency=self.recency / total,
            location=self.location / total,
        )


@dataclass(frozen=True)
class ScoringConfig:
    weights: Weights = field(default_factory=Weights)
    recency_half_life_days: float = 14.0


@dataclass
class MatchScore:
    score: float
    skill: float
    availability: float
    recency: float
    location: float
    contributions: dict[str, float]
    reason: str


# ── Individual terms ─────────────────────────────────────────────────────

def skill_score(requester: SkillIndex, match: SkillMatch) -> float:
    raw = min(1.0, match.count / max(1, requester.size))
    if match.bidirectional:
        raw = min(1.0, raw * BIDIRECTIONAL_BOOST)
    return raw


def as_utc(moment: datetime) -> datetime:
    # Mongo hands back naive datetimes that are already UTC.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def days_since(moment: datetime | None, now: datetime) -> float | None:
    if moment is None:
        return None
    delta = as_utc(now) - as_utc(moment)
    return max(0.0, delta.total_seconds() / 86400)


def recency_score(days: float | None, half_life_days: float) -> float:
    if days is None:
        return 0.0
    return math.exp(-math.log(2) * days / half_life_days)


def location_match(requester: UserProfile, candidate: UserProfile) -> str | None:
    """Return ``"city"``, ``"country"`` or None."""
    city_a, city_b = norm(requester.location_city), norm(candidate.location_city)
    country_a, country_b = norm(requester.location_country), norm(candidate.location_country)

    same_country = bool(country_a) and country_a == country_b
    if city_a and city_a == city_b and (same_country or not country_a or not country_b):
        return "city"
    if same_country:
        return "country"
    return None


LOCATION_VALUES = {"city": 1.0, "country": 0.5, None: 0.0}


# ── Reason ───────────────────────────────────────────────────────────────

def _join(labels: list[str], limit: int = 3) -> str:
    if len(labels) > limit:
        shown = labels[:limit]
        return f"{', '.join(shown)} and {len(labels) - limit} more"
    if len(labels) == 1:
        return labels[0]
    return f"{', '.join(labels[:-1])} and {labels[-1]}"


def _skill_phrase(match: SkillMatch, candidate: SkillIndex) -> str:
    teach = candidate.labelled(match.teach_to_learn)
    learn = candidate.labelled(match.learn_to_teach)
    if teach and learn:
        return f"you can teach {_join(teach)} and learn {_join(learn)}"
    if teach:
        return f"you can teach {_join(teach)}"
    return f"you can learn {_join(learn)}"


def _availability_phrase(hours: int) -> str:
    unit = "hour" if hours == 1 else "hours"
    return f"you share {hours} overlapping {unit} per week"


def _location_phrase(kind: str, candidate: UserProfile) -> str:
    place = candidate.location_city if kind == "city" else candidate.location_country
    return f"you are both in {place.strip()}"


def _recency_phrase(days: float) -> str:
    if days < 1:
        return "they were active today"
    if days < 2:
        return "they were active yesterday"
    return f"they were active {int(days)} days ago"


def rank_terms(contributions: dict[str, float]) -> list[str]:
    """Terms with a positive contribution, largest first, ties by TERM_PRIORITY."""
    ordered = sorted(TERM_PRIORITY, key=lambda t: -contributions[t])
    return [t for t in ordered if contributions[t] > 0]


def build_reason(
    contributions: dict[str, float],
    match: SkillMatch,
    candidate: UserProfile,
    candidate_skills: SkillIndex,
    overlap_result: Overlap,
    location_kind: str | None,
    days: float | None,
) -> str:
    phrases = []
    for term in rank_terms(contributions)[:2]:
        if term == "skill":
            phrases.append(_skill_phrase(match, candidate_skills))
        elif term == "availability":
            phrases.append(_availability_phrase(overlap_result.hours))
        elif term == "location":
            phrases.append(_location_phrase(location_kind, candidate))
        elif term == "recency":
            phrases.append(_recency_phrase(days))

    if not phrases:
        return FALLBACK_REASON
    sentence = "; ".join(phrases)
    return sentence[0].upper() + sentence[1:] + "."


# ── Entry point ──────────────────────────────────────────────────────────

def score_candidate(
    requester: UserProfile,
    requester_skills: SkillIndex,
    candidate: UserProfile,
    candidate_skills: SkillIndex,
    match: SkillMatch,
    overlap_result: Overlap,
    config: ScoringConfig,
    now: datetime,
) -> MatchScore:
    weights = config.weights.normalized()

    skill = skill_score(requester_skills, match)
    availability = overlap_result.percentage / 100
    days = days_since(candidate.last_active_at, now)
    recency = recency_score(days, config.recency_half_life_days)
    location_kind = location_match(requester, candidate)
    location = LOCATION_VALUES[location_kind]

    contributions = {
        "skill": weights.skill * skill,
        "availability": weights.availability * availability,
        "recency": weights.recency * recency,
        "location": weights.location * location,
    }
    total = round(100 * sum(contributions.values()), SCORE_PRECISION)

    return MatchScore(
        score=min(100.0, max(0.0, total)),
        skill=skill,
        availability=availability,
        recency=recency,
        location=location,
        contributions=contributions,
        reason=build_reason(
            contributions, match, candidate, candidate_skills,
            overlap_result, location_kind, days,
        ),
    )
