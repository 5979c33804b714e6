"""Error kinds surfaced by the match service.

Every hard failure is returned to the client as ``{"code", "message",
"details"}`` so the UI can tell "no matches" apart from "matching failed".
"""

from typing import Any

from pydantic import BaseModel


class ErrorPayload(BaseModel):
    code: str
    message: str
    details: Any | None = None


class MatchError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "An error occurred while generating matches"

    def __init__(self, message: str | None = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_payload(self) -> ErrorPayload:
        return ErrorPayload(code=self.code, message=self.message, details=self.details)


class InvalidRequest(MatchError):
    code = "INVALID_REQUEST"
    status_code = 400
    default_message = "Invalid match request"


class Unauthorized(MatchError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Authentication required"


class RequesterNotFound(MatchError):
    code = "REQUESTER_NOT_FOUND"
    status_code = 404
    default_message = "Requester profile not found"


class CandidateSourceUnavailable(MatchError):
    code = "CANDIDATE_SOURCE_UNAVAILABLE"
    status_code = 503
    default_message = "Candidate profiles are temporarily unavailable"


class RequestTimeout(MatchError):
    code = "REQUEST_TIMEOUT"
    status_code = 504
    default_message = "Matching did not finish before the deadline"


class InternalError(MatchError):
    pass
