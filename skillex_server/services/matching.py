import asyncio
import logging
import time
from dataclasses import replace
from datetime import datetime, timezone

from pymongo.errors import PyMongoError
from starlette.concurrency import run_in_threadpool

from skillex_server.config import Settings
from skillex_server.errors import (
    CandidateSourceUnavailable,
    InternalError,
    MatchError,
    RequesterNotFound,
    RequestTimeout,
    Unauthorized,
)
from skillex_server.models.connection import ConnectionStore
from skillex_server.models.matching import MatchPreviewResponse, MatchRequest, WeightsIn
from skillex_server.models.user import UserProfile, UserStore
from skillex_server.services.availability import AvailabilityMask
from skillex_server.services.ranking import CompiledFilters, RankedResultBuilder
from skillex_server.services.scoring import ScoringConfig, Weights

logger = logging.getLogger(__name__)


def scoring_config(settings: Settings, override: WeightsIn | None = None) -> ScoringConfig:
    """Configured weights, with any terms set in ``override`` taking their place."""
    weights = Weights(
        skill=settings.weight_skill,
        availability=settings.weight_availability,
        recency=settings.weight_recency,
        location=settings.weight_location,
    )
    if override is not None:
        weights = replace(weights, **override.model_dump(exclude_none=True))
    return ScoringConfig(weights=weights, recency_half_life_days=settings.recency_half_life_days)


async def _load(
    requester_id: str,
    users: UserStore,
    connections: ConnectionStore,
    scan_limit: int,
) -> tuple[UserProfile, list[UserProfile], bool, set[str]]:
    requester = await users.get(requester_id)
    if requester is None:
        raise RequesterNotFound(details={"requester_id": requester_id})

    (pool, truncated), excluded = await asyncio.gather(
        users.list_candidates(requester_id, scan_limit),
        connections.excluded_ids_for(requester_id),
    )
    return requester, pool, truncated, excluded


async def find_matches(
    requester_id: str | None,
    request: MatchRequest,
    users: UserStore,
    connections: ConnectionStore,
    settings: Settings,
    now: datetime | None = None,
) -> MatchPreviewResponse:
    """Rank the candidate pool for ``requester_id``.

    Input is fully validated before the store is touched. Store reads and
    scoring share one deadline of ``settings.timeout_seconds``; on timeout
    nothing partial is returned.
    """
    if not requester_id or not requester_id.strip():
        raise Unauthorized()

    if "limit" not in request.model_fields_set:
        request = request.model_copy(update={"limit": settings.default_limit})

    builder = RankedResultBuilder(scoring_config(settings, request.weights))
    CompiledFilters.compile(request.filters)
    requester_mask = None
    if request.availability_mask is not None:
        requester_mask = AvailabilityMask.from_slots(request.availability_mask)

    started = time.monotonic()
    deadline = started + settings.timeout_seconds

    try:
        requester, pool, truncated, excluded = await asyncio.wait_for(
            _load(requester_id, users, connections, settings.scan_limit),
            timeout=settings.timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning("candidate fetch for %s timed out", requester_id)
        raise RequestTimeout() from None
    except PyMongoError as e:
        logger.error("candidate fetch for %s failed", requester_id, exc_info=True)
        raise CandidateSourceUnavailable() from e
    except MatchError:
        raise
    except Exception as e:
        logger.exception("reading candidates for %s failed", requester_id)
        raise InternalError() from e

    if truncated:
        logger.warning("candidate pool for %s truncated at %d", requester_id, settings.scan_limit)

    try:
        response = await run_in_threadpool(
            builder.build,
            request,
            requester,
            pool,
            now or datetime.now(timezone.utc),
            excluded_ids=excluded,
            requester_mask=requester_mask,
            truncated=truncated,
            deadline=deadline,
        )
    except MatchError:
        raise
    except Exception as e:
        logger.exception("ranking failed for %s", requester_id)
        raise InternalError() from e

    logger.info(
        "match preview requester=%s scanned=%d total=%d elapsed_ms=%.1f",
        requester_id,
        len(pool),
        response.total,
        (time.monotonic() - started) * 1000,
    )
    return response


async def available_skills(
    requester_id: str | None,
    users: UserStore,
    connections: ConnectionStore,
    settings: Settings,
) -> list[str]:
    """Teach-skill labels on offer across the requester's eligible pool."""
    response = await find_matches(requester_id, MatchRequest(limit=1), users, connections, settings)
    return response.available_skills
