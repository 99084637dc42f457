"""
Discovery Service

Builds a page of ranked candidates for a requester:
requester lookup -> excluded peers -> opposite-role pool -> candidate filter
-> ranker -> pagination. Read-only; performs no writes.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import structlog
from sqlalchemy.orm import Session

from matcher.config import settings
from matcher.errors import InvalidInput, ProfileNotFound
from matcher.models import parse_role
from matcher.services.match_store import MatchStore
from matcher.services.matching import (
    DiscoveryFilters,
    RankedCandidate,
    filter_candidates,
    paginate,
    rank_candidates,
)
from matcher.services.profile_store import ProfileStore

logger = structlog.get_logger(__name__)

PLATFORMS = ("instagram", "tiktok")


@dataclass
class DiscoveryPage:
    """One page of discovery results. `total` counts all ranked candidates."""
    matches: List[RankedCandidate] = field(default_factory=list)
    total: int = 0
    limit: int = 50
    offset: int = 0


def validate_filters(filters: DiscoveryFilters) -> None:
    """
    Raises:
        InvalidInput: Negative or inverted ranges, unknown platform
    """
    ranges = (
        ("reach", filters.min_reach, filters.max_reach),
        ("followers_ig", filters.min_followers_ig, filters.max_followers_ig),
        ("followers_tiktok", filters.min_followers_tiktok, filters.max_followers_tiktok),
    )
    for name, low, high in ranges:
        for bound in (low, high):
            if bound is not None and bound < 0:
                raise InvalidInput(f"{name} bounds must be non-negative")
        if low is not None and high is not None and low > high:
            raise InvalidInput(f"min {name} must not exceed max {name}")

    if filters.platform is not None and filters.platform not in PLATFORMS:
        raise InvalidInput(f"platform must be one of {', '.join(PLATFORMS)}")


class DiscoveryService:

    def __init__(self, db: Session):
        self.profiles = ProfileStore(db)
        self.matches = MatchStore(db)

    def discover(
        self,
        user_id: str,
        role,
        filters: Optional[DiscoveryFilters] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> DiscoveryPage:
        """
        Ranked, filtered, paginated candidates of the opposite role.

        Args:
            user_id: Requester id
            role: Requester role (creator or brand)
            filters: Optional facets
            limit: Page size (default from settings, capped at the configured maximum)
            offset: Number of ranked candidates to skip

        Returns:
            DiscoveryPage; an offset past the end yields no matches and the full total

        Raises:
            InvalidInput: Bad role, pagination or facet values
            ProfileNotFound: Requester user or profile missing
        """
        role = parse_role(role)
        filters = filters or DiscoveryFilters()
        limit = settings.discover_default_limit if limit is None else limit

        if not user_id:
            raise InvalidInput("User ID is required")
        if limit < 1:
            raise InvalidInput("limit must be at least 1")
        limit = min(limit, settings.discover_max_limit)
        if offset < 0:
            raise InvalidInput("offset must be non-negative")
        validate_filters(filters)

        log = logger.bind(user_id=user_id, role=role.value)

        user = self.profiles.get_user(user_id)
        if user is None:
            raise ProfileNotFound(f"User not found: {user_id}", user_id=user_id)
        if user.role != role.value:
            raise InvalidInput(f"User {user_id} is a {user.role}, not a {role.value}")

        profile = self.profiles.get_profile(user_id, role)
        if profile is None:
            raise ProfileNotFound(f"Profile not found for user {user_id}", user_id=user_id)

        excluded = self.matches.excluded_peers(user_id, role)
        pool = self.profiles.list_pool(role.opposite)

        candidates = filter_candidates(pool, excluded, filters, role.opposite)
        ranked = rank_candidates(user, profile, candidates, role)
        page = paginate(ranked, offset, limit)

        log.info("discovery_completed",
                 pool_size=len(pool),
                 excluded=len(excluded),
                 candidates=len(candidates),
                 returned=len(page),
                 offset=offset,
                 limit=limit,
                 filters=filters.applied())

        return DiscoveryPage(matches=page, total=len(ranked), limit=limit, offset=offset)
