"""
Shared enumerations for users and matches
"""

from enum import Enum

from matcher.errors import InvalidInput


class UserRole(str, Enum):
    """Population a user belongs to. Immutable after signup."""
    creator = "creator"
    brand = "brand"

    @property
    def opposite(self) -> "UserRole":
        return UserRole.brand if self is UserRole.creator else UserRole.creator


class MatchStatus(str, Enum):
    """
    Match lifecycle states.

    `matched` is reserved for moderation; no decision flow reaches it.
    """
    pending = "pending"
    shortlisted = "shortlisted"
    rejected = "rejected"
    matched = "matched"


# Statuses a party may set through a decision (swipe)
DECISION_STATUSES = (MatchStatus.pending, MatchStatus.shortlisted, MatchStatus.rejected)


def parse_role(value) -> UserRole:
    """
    Coerce a role value, rejecting anything but creator/brand.

    Raises:
        InvalidInput: Unknown or missing role
    """
    try:
        return UserRole(value)
    except ValueError:
        raise InvalidInput(f"Valid role is required (creator or brand), got {value!r}")


def parse_status(value, allowed=tuple(MatchStatus)) -> MatchStatus:
    """
    Coerce a status value and check it is allowed for the operation.

    Raises:
        InvalidInput: Unknown status or status not allowed here
    """
    allowed_names = ", ".join(s.value for s in allowed)
    try:
        status = MatchStatus(value)
    except ValueError:
        raise InvalidInput(f"Valid status is required ({allowed_names}), got {value!r}")
    if status not in allowed:
        raise InvalidInput(f"Valid status is required ({allowed_names}), got {value!r}")
    return status
