import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from skillex_server.config import Settings, get_settings
from skillex_server.db import close_db, connect_db, get_db
from skillex_server.errors import InvalidRequest, MatchError
from skillex_server.models.connection import ConnectionStore
from skillex_server.models.matching import (
    AvailableSkills,
    HealthStatus,
    MatchPreviewResponse,
    MatchRequest,
)
from skillex_server.models.user import UserStore
from skillex_server.services.matching import available_skills, find_matches

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    await connect_db(settings)
    yield
    await close_db()


app = FastAPI(title="Skillex Match API", lifespan=lifespan)


# ── Error payloads ─────────────────────────────────────────────────────


@app.exception_handler(MatchError)
async def match_error_handler(request: Request, exc: MatchError):
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(exc.to_payload(), exclude_none=True),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    error = InvalidRequest(details=jsonable_encoder(exc.errors()))
    return await match_error_handler(request, error)


# ── Dependencies ───────────────────────────────────────────────────────


def get_user_store() -> UserStore:
    return UserStore(get_db())


def get_connection_store() -> ConnectionStore:
    return ConnectionStore(get_db())


def get_requester_id(x_user_id: str | None = Header(None)) -> str | None:
    """Requester id set by the auth gateway; trusted as-is."""
    return x_user_id


# ── Match endpoints ────────────────────────────────────────────────────


@app.post("/v1/match/preview", response_model=MatchPreviewResponse)
async def match_preview(
    body: MatchRequest,
    requester_id: str | None = Depends(get_requester_id),
    users: UserStore = Depends(get_user_store),
    connections: ConnectionStore = Depends(get_connection_store),
    settings: Settings = Depends(get_settings),
):
    return await find_matches(requester_id, body, users, connections, settings)


@app.get("/v1/match/skills", response_model=AvailableSkills)
async def match_skills(
    requester_id: str | None = Depends(get_requester_id),
    users: UserStore = Depends(get_user_store),
    connections: ConnectionStore = Depends(get_connection_store),
    settings: Settings = Depends(get_settings),
):
    skills = await available_skills(requester_id, users, connections, settings)
    return AvailableSkills(skills=skills)


# ── Health ─────────────────────────────────────────────────────────────


@app.get("/v1/health", response_model=HealthStatus)
async def health(settings: Settings = Depends(get_settings)):
    return HealthStatus(ok=True, version=settings.version, timestamp=datetime.now(timezone.utc))
