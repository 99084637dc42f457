"""
Candidate Filter

Narrows the opposite-role population for a discovery request. Excluded peers
(any existing match with the requester, rejections included) are removed
first, then the optional facets are applied. Facets are independent and
AND-combined; a facet left as None places no constraint.

Creator-only facets (reach, follower ranges, platform) reject brand
candidates when requested, and brand-only facets (vertical, ad spend range)
reject creator candidates, rather than passing vacuously.
"""

from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Optional, Set, Tuple, Any

from matcher.models.enums import UserRole
from matcher.services.matching.scorer import creator_reach


class Candidate(NamedTuple):
    """A user of the opposite role with the profile used for scoring."""
    user: Any
    profile: Any


@dataclass
class DiscoveryFilters:
    """Optional facet constraints for discovery."""
    min_reach: Optional[int] = None
    max_reach: Optional[int] = None
    vertical: Optional[str] = None
    verified: Optional[bool] = None
    ad_spend_range: Optional[str] = None
    search: Optional[str] = None

    # Per-platform facets for brands browsing creators
    platform: Optional[str] = None  # instagram, tiktok
    min_followers_ig: Optional[int] = None
    max_followers_ig: Optional[int] = None
    min_followers_tiktok: Optional[int] = None
    max_followers_tiktok: Optional[int] = None

    def applied(self) -> dict:
        """Facets that constrain the result, for logging."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def _within(value: Optional[int], minimum: Optional[int], maximum: Optional[int]) -> bool:
    if minimum is None and maximum is None:
        return True
    if value is None:
        return False
    if minimum is not None and value < minimum:
        return False
    if maximum is not None and value > maximum:
        return False
    return True


def _contains(value: Optional[str], needle: str) -> bool:
    return bool(value) and needle in value.lower()


def matches_reach(candidate: Candidate, role: UserRole, filters: DiscoveryFilters) -> bool:
    if filters.min_reach is None and filters.max_reach is None:
        return True
    if role is not UserRole.creator:
        return False
    return _within(creator_reach(candidate.profile), filters.min_reach, filters.max_reach)


def matches_platform(candidate: Candidate, role: UserRole, filters: DiscoveryFilters) -> bool:
    ig_range = (filters.min_followers_ig, filters.max_followers_ig)
    tiktok_range = (filters.min_followers_tiktok, filters.max_followers_tiktok)
    if filters.platform is None and ig_range == (None, None) and tiktok_range == (None, None):
        return True
    if role is not UserRole.creator:
        return False

    profile = candidate.profile
    if filters.platform == "instagram" and not profile.instagram_handle:
        return False
    if filters.platform == "tiktok" and not profile.tiktok_handle:
        return False

    return (
        _within(profile.follower_count_ig, *ig_range)
        and _within(profile.follower_count_tiktok, *tiktok_range)
    )


def matches_brand_facets(candidate: Candidate, role: UserRole, filters: DiscoveryFilters) -> bool:
    if filters.vertical is None and filters.ad_spend_range is None:
        return True
    if role is not UserRole.brand:
        return False
    if filters.vertical is not None and candidate.profile.vertical != filters.vertical:
        return False
    if filters.ad_spend_range is not None and candidate.profile.ad_spend_range != filters.ad_spend_range:
        return False
    return True


def matches_search(candidate: Candidate, role: UserRole, filters: DiscoveryFilters) -> bool:
    if not filters.search:
        return True
    needle = filters.search.lower()
    profile = candidate.profile
    if role is UserRole.brand:
        return _contains(profile.company_name, needle)
    return (
        _contains(profile.instagram_handle, needle)
        or _contains(profile.tiktok_handle, needle)
        or _contains(profile.bio, needle)
    )


def filter_candidates(
    pool: Iterable[Tuple[Any, Any]],
    excluded: Set[str],
    filters: DiscoveryFilters,
    candidate_role: UserRole,
) -> List[Candidate]:
    """
    Apply exclusion and facet filters to a candidate pool.

    Args:
        pool: (User, profile or None) pairs of the opposite role
        excluded: User ids the requester already has a match with
        filters: Facet constraints
        candidate_role: Role of the pool (opposite of the requester)

    Returns:
        Admissible candidates in pool order
    """
    candidate_role = UserRole(candidate_role)
    result: List[Candidate] = []

    for user, profile in pool:
        if user.id in excluded:
            continue
        # Scoring needs a profile
        if profile is None:
            continue
        if filters.verified is not None and bool(user.verified) != filters.verified:
            continue

        candidate = Candidate(user=user, profile=profile)
        if not matches_reach(candidate, candidate_role, filters):
            continue
        if not matches_platform(candidate, candidate_role, filters):
            continue
        if not matches_brand_facets(candidate, candidate_role, filters):
            continue
        if not matches_search(candidate, candidate_role, filters):
            continue

        result.append(candidate)

    return result
