"""
Database Models
"""

from matcher.models.enums import UserRole, MatchStatus, DECISION_STATUSES, parse_role, parse_status
from matcher.models.user import User
from matcher.models.profile import CreatorProfile, BrandProfile
from matcher.models.match import Match
from matcher.models.conversation import Conversation
from matcher.models.outbox_message import OutboxMessage

__all__ = [
    "UserRole",
    "MatchStatus",
    "DECISION_STATUSES",
    "parse_role",
    "parse_status",
    "User",
    "CreatorProfile",
    "BrandProfile",
    "Match",
    "Conversation",
    "OutboxMessage",
]
