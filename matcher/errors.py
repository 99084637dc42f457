"""
Error taxonomy for the match engine.

InvalidInput, ProfileNotFound and NotFound reach the caller as 4xx responses.
ConflictIgnored and DownstreamUnavailable are resolved or logged inside the
engine and never surface to the client.
"""


class MatchingError(Exception):
    """Base class for match engine errors."""

    code = "matching_error"
    status_code = 500

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class InvalidInput(MatchingError):
    """Malformed role, status or pagination value. Raised before any store access."""

    code = "invalid_input"
    status_code = 400


class ProfileNotFound(MatchingError):
    """Requester, user or profile required for scoring is missing."""

    code = "profile_not_found"
    status_code = 404


class NotFound(MatchingError):
    """Referenced match id does not exist."""

    code = "not_found"
    status_code = 404


class ConflictIgnored(MatchingError):
    """Insert lost a race on the pair key; the existing row wins."""

    code = "conflict_ignored"
    status_code = 409


class DownstreamUnavailable(MatchingError):
    """Conversation collaborator failed, timed out or is circuit-broken."""

    code = "downstream_unavailable"
    status_code = 503
