import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable

from skillex_server.errors import InvalidRequest, RequestTimeout
from skillex_server.models.matching import (
    MatchAvailability,
    MatchCandidate,
    MatchFilters,
    MatchPreviewResponse,
    MatchRequest,
    MatchSkills,
    MatchUser,
    SortKey,
)
from skillex_server.models.user import SkillLevel, UserProfile
from skillex_server.services.availability import (
    AvailabilityMask,
    Overlap,
    overlap,
    window_mask,
)
from skillex_server.services.scoring import MatchScore, ScoringConfig, as_utc, score_candidate
from skillex_server.services.skills import (
    SkillIndex,
    SkillMatch,
    match_skills,
    normalize_filter_tags,
)

logger = logging.getLogger(__name__)

PERCENTAGE_PRECISION = 2


def profile_mask(profile: UserProfile) -> AvailabilityMask:
    """The profile's mask, or an empty one when it is missing or malformed."""
    if profile.week_mask is None:
        return AvailabilityMask.empty()
    try:
        return AvailabilityMask.from_slots(profile.week_mask)
    except InvalidRequest as e:
        logger.warning("profile %s has an unusable availability mask: %s", profile.id, e.message)
        return AvailabilityMask.empty()


@dataclass
class CompiledFilters:
    """Request filters validated and normalized once per request."""
    skills: set[str] | None = None
    location: str | None = None
    skill_level: SkillLevel | None = None
    window: AvailabilityMask | None = None
    search: str | None = None

    @classmethod
    def compile(cls, filters: MatchFilters | None) -> "CompiledFilters":
        if filters is None:
            return cls()
        location = (filters.location or "").strip().casefold() or None
        search = (filters.search or "").strip().casefold() or None
        return cls(
            skills=normalize_filter_tags(filters.skills),
            location=location,
            skill_level=filters.skill_level,
            window=window_mask(filters.availability),
            search=search,
        )

    def accepts(self, profile: UserProfile, skills: SkillIndex, mask: AvailabilityMask) -> bool:
        if self.skills is not None and not skills.has_any(self.skills):
            return False
        if self.skill_level is not None and not skills.has_level(self.skill_level):
            return False
        if self.location is not None and self.location not in (profile.location or "").casefold():
            return False
        if self.window is not None and not mask.intersects(self.window):
            return False
        if self.search is not None and not _matches_search(self.search, profile, skills):
            return False
        return True


def _matches_search(needle: str, profile: UserProfile, skills: SkillIndex) -> bool:
    haystack: list[str | None] = [
        profile.full_name,
        profile.handle,
        profile.bio,
        profile.location,
        *skills.labels.values(),
    ]
    return any(needle in text.casefold() for text in haystack if text)


@dataclass
class ScoredCandidate:
    profile: UserProfile
    skills: SkillIndex
    match: SkillMatch
    mask: AvailabilityMask
    overlap: Overlap
    result: MatchScore


# ── Sort keys (all end in handle, id so the order is total) ──────────────

def _by_score(c: ScoredCandidate):
    return (-c.result.score, -c.overlap.hours, c.profile.handle, c.profile.id)


def _by_last_active(c: ScoredCandidate):
    seen = c.profile.last_active_at
    if seen is None:
        return (1, 0.0, c.profile.handle, c.profile.id)
    return (0, -as_utc(seen).timestamp(), c.profile.handle, c.profile.id)


def _by_name(c: ScoredCandidate):
    return (c.profile.full_name.casefold(), c.profile.handle, c.profile.id)


def _by_location(c: ScoredCandidate):
    location = c.profile.location
    if location is None:
        return (1, "", c.profile.handle, c.profile.id)
    return (0, location.casefold(), c.profile.handle, c.profile.id)


SORT_KEYS: dict[SortKey, Callable[[ScoredCandidate], tuple]] = {
    SortKey.match_score: _by_score,
    SortKey.last_active: _by_last_active,
    SortKey.name: _by_name,
    SortKey.location: _by_location,
}


class RankedResultBuilder:
    """Filter, score, sort and paginate one snapshot of the candidate pool.

    Pure and synchronous: all I/O happens before ``build`` is called.
    """

    def __init__(self, config: ScoringConfig):
        # Normalizing here rejects an all-zero weight set before any scoring.
        self.config = ScoringConfig(
            weights=config.weights.normalized(),
            recency_half_life_days=config.recency_half_life_days,
        )

    def build(
        self,
        request: MatchRequest,
        requester: UserProfile,
        pool: Iterable[UserProfile],
        now: datetime,
        excluded_ids: set[str] | None = None,
        requester_mask: AvailabilityMask | None = None,
        truncated: bool = False,
        deadline: float | None = None,
    ) -> MatchPreviewResponse:
        filters = CompiledFilters.compile(request.filters)
        excluded = excluded_ids or set()

        requester_skills = SkillIndex.from_records(requester.skills)
        if requester_mask is None:
            requester_mask = profile_mask(requester)

        scored: list[ScoredCandidate] = []
        offered: dict[str, str] = {}

        for candidate in pool:
            if deadline is not None and time.monotonic() > deadline:
                raise RequestTimeout()
            if candidate.id == requester.id or candidate.id in excluded:
                continue

            skills = SkillIndex.from_records(candidate.skills)
            for tag in skills.teach:
                offered.setdefault(tag, skills.label(tag))

            match = match_skills(requester_skills, skills)
            # Skill overlap is a hard filter only for requesters with skills.
            if not requester_skills.is_empty() and match.is_empty():
                continue

            mask = profile_mask(candidate)
            if not filters.accepts(candidate, skills, mask):
                continue

            scored.append(self._score(requester, requester_skills, requester_mask, candidate, skills, match, mask, now))

        scored.sort(key=SORT_KEYS[request.sort_by])

        total = len(scored)
        page = scored[request.offset:request.offset + request.limit]

        return MatchPreviewResponse(
            matches=[to_match_candidate(c) for c in page],
            total=total,
            has_more=request.offset + request.limit < total,
            available_skills=[offered[t] for t in sorted(offered)],
            availability_unset=requester_mask.is_empty(),
            truncated=truncated,
        )

    def _score(
        self,
        requester: UserProfile,
        requester_skills: SkillIndex,
        requester_mask: AvailabilityMask,
        candidate: UserProfile,
        skills: SkillIndex,
        match: SkillMatch,
        mask: AvailabilityMask,
        now: datetime,
    ) -> ScoredCandidate:
        overlap_result = overlap(requester_mask, mask)
        result = score_candidate(
            requester, requester_skills, candidate, skills,
            match, overlap_result, self.config, now,
        )
        return ScoredCandidate(
            profile=candidate,
            skills=skills,
            match=match,
            mask=mask,
            overlap=overlap_result,
            result=result,
        )


def to_match_candidate(c: ScoredCandidate) -> MatchCandidate:
    p = c.profile
    return MatchCandidate(
        user=MatchUser(
            id=p.id,
            handle=p.handle,
            full_name=p.full_name,
            bio=p.bio,
            avatar_url=p.avatar_url,
            location_city=p.location_city,
            location_country=p.location_country,
            timezone=p.timezone,
        ),
        skills=MatchSkills(
            teach=c.skills.labelled(c.skills.teach),
            learn=c.skills.labelled(c.skills.learn),
            overlap=c.skills.labelled(c.match.overlap()),
            teach_to_learn=c.skills.labelled(c.match.teach_to_learn),
            learn_to_teach=c.skills.labelled(c.match.learn_to_teach),
            bidirectional=c.match.bidirectional,
        ),
        availability=MatchAvailability(
            overlap=c.overlap.hours,
            percentage=round(c.overlap.percentage, PERCENTAGE_PRECISION),
        ),
        score=c.result.score,
        reason=c.result.reason,
        last_active=p.last_active_at,
        availability_summary=c.mask.summary(),
    )
