"""
Error taxonomy for the interview session core.

Every failure is scoped to a single request. Each error carries the
outcome category (``kind``) and the HTTP status the API layer renders it with.
"""
from typing import Any, Optional


# Truncation length for raw upstream content attached to errors
RAW_SNIPPET_LENGTH = 500


def truncate_snippet(raw: Optional[str], limit: int = RAW_SNIPPET_LENGTH) -> str:
    """Truncate raw upstream text for diagnostics."""
    if not raw:
        return ""
    raw = str(raw)
    return raw if len(raw) <= limit else raw[:limit - 3] + "..."


class InterviewError(Exception):
    """Base class for all interview core errors."""

    kind: str = "internal"
    status_code: int = 500

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        return {
            "code": self.kind,
            "message": self.message,
            "detail": self.detail,
        }


class ValidationFailed(InterviewError):
    """Malformed or too-short input, rejected before any external call."""
    kind = "validation"
    status_code = 400


class NavigationOutOfRange(ValidationFailed):
    """Cursor move would leave the question range."""


class InterviewNotCompleted(ValidationFailed):
    """Operation requires a completed interview."""


class SessionNotFound(InterviewError):
    """Unknown session id (or share token)."""
    kind = "not_found"
    status_code = 404

    def __init__(self, session_id: str, message: Optional[str] = None):
        super().__init__(message or f"Session not found: {session_id}")
        self.session_id = session_id


class InterviewConflict(InterviewError):
    """Action conflicts with the persisted session state."""
    kind = "conflict"
    status_code = 409


class DuplicateEvaluation(InterviewConflict):
    """The current question already has an evaluation."""

    def __init__(self, question_id: str):
        super().__init__(
            "This question is already answered/evaluated.",
            detail={"question_id": question_id},
        )
        self.question_id = question_id


class SessionAlreadyExists(InterviewConflict):
    """Session id already present in the store."""

    def __init__(self, session_id: str):
        super().__init__(f"Session already exists: {session_id}")
        self.session_id = session_id


class RateLimited(InterviewError):
    """Caller exceeded the submission rate limit."""
    kind = "rate_limited"
    status_code = 429


class UpstreamParseError(InterviewError):
    """Reasoning service returned unparsable or empty content."""
    kind = "upstream_parse_failure"
    status_code = 502

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message, detail={"raw": truncate_snippet(raw)})


class UpstreamUnavailable(InterviewError):
    """Reasoning service timed out or could not be reached."""
    kind = "upstream_unavailable"
    status_code = 503


class ConfigurationError(InterviewError):
    """A required external dependency is not configured."""
    kind = "configuration"
    status_code = 500
