"""
Matches API Router
Discovery, swipe decisions, moderation status overwrite and shortlist view
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
import structlog

from matcher.database import get_db
from matcher.errors import InvalidInput
from matcher.models import parse_role
from matcher.models.match_schemas import (
    DecisionRequest,
    StatusUpdateRequest,
    MatchOut,
    MatchEnvelope,
    DiscoveryItem,
    DiscoveryResponse,
    ShortlistedMatch,
    ShortlistedResponse,
)
from matcher.services.discovery import DiscoveryService
from matcher.services.lifecycle import MatchLifecycleManager
from matcher.services.matching import DiscoveryFilters
from matcher.services.profile_store import ProfileStore
from matcher.services.shortlist_events import ShortlistEventRelay, get_event_relay

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/matches", tags=["matches"])


def _require_db(db: Optional[Session]) -> Session:
    if db is None:
        raise HTTPException(status_code=503, detail="Database not configured")
    return db


@router.get("", response_model=DiscoveryResponse)
def discover_matches(
    user_id: Optional[str] = Query(None, alias="userId"),
    role: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, description="Page size (default 50)"),
    offset: int = Query(0),
    min_reach: Optional[int] = Query(None, alias="minReach"),
    max_reach: Optional[int] = Query(None, alias="maxReach"),
    vertical: Optional[str] = Query(None),
    verified: Optional[bool] = Query(None),
    ad_spend_range: Optional[str] = Query(None, alias="adSpendRange"),
    search: Optional[str] = Query(None),
    platform: Optional[str] = Query(None, description="instagram or tiktok"),
    min_followers_ig: Optional[int] = Query(None, alias="minFollowersIg"),
    max_followers_ig: Optional[int] = Query(None, alias="maxFollowersIg"),
    min_followers_tiktok: Optional[int] = Query(None, alias="minFollowersTiktok"),
    max_followers_tiktok: Optional[int] = Query(None, alias="maxFollowersTiktok"),
    db: Session = Depends(get_db)
):
    """
    Ranked candidates of the opposite role for a user.

    Candidates the user already has a match with (any status) are never
    returned. Results are sorted by match score, highest first.

    Returns:
        dict with the page of matches, total ranked count, limit and offset
    """
    # Role is checked before any store access
    parse_role(role)
    db = _require_db(db)

    filters = DiscoveryFilters(
        min_reach=min_reach,
        max_reach=max_reach,
        vertical=vertical or None,
        verified=verified,
        ad_spend_range=ad_spend_range or None,
        search=search or None,
        platform=platform or None,
        min_followers_ig=min_followers_ig,
        max_followers_ig=max_followers_ig,
        min_followers_tiktok=min_followers_tiktok,
        max_followers_tiktok=max_followers_tiktok,
    )

    page = DiscoveryService(db).discover(
        user_id=user_id,
        role=role,
        filters=filters,
        limit=limit,
        offset=offset,
    )

    return DiscoveryResponse(
        matches=[DiscoveryItem(**item.to_dict()) for item in page.matches],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
    )


@router.post("", response_model=MatchEnvelope, status_code=201)
def record_decision(
    request: DecisionRequest,
    db: Session = Depends(get_db),
    relay: Optional[ShortlistEventRelay] = Depends(get_event_relay)
):
    """
    Record a swipe decision (pending, shortlisted or rejected) for a pair.

    Creates the match on first decision and updates its status afterwards.
    Shortlisting opens a conversation for the match (best-effort).
    """
    db = _require_db(db)

    match = MatchLifecycleManager(db, event_relay=relay).record_decision(
        creator_id=request.creator_id,
        brand_id=request.brand_id,
        status=request.status,
    )
    return MatchEnvelope(match=MatchOut.model_validate(match))


@router.get("/shortlisted", response_model=ShortlistedResponse)
def list_shortlisted(
    user_id: Optional[str] = Query(None, alias="userId"),
    role: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """
    Shortlisted matches of a user, best score first, each enriched with the
    opposite party's user record and profile.
    """
    role = parse_role(role)
    db = _require_db(db)
    if not user_id:
        raise InvalidInput("User ID is required")

    matches = MatchLifecycleManager(db).list_by_status(user_id, role, "shortlisted")

    profiles = ProfileStore(db)
    enriched = []
    for match in matches:
        opposite_id = match.brand_id if role.value == "creator" else match.creator_id
        opposite_user = profiles.get_user(opposite_id)
        opposite_profile = profiles.get_profile(opposite_id, role.opposite)

        item = ShortlistedMatch.model_validate(match)
        item.user = {
            "id": opposite_user.id,
            "role": opposite_user.role,
            "verified": opposite_user.verified,
        } if opposite_user else None
        item.profile = opposite_profile.to_dict() if opposite_profile else None
        enriched.append(item)

    logger.info("shortlisted_listed", user_id=user_id, role=role.value, count=len(enriched))

    return ShortlistedResponse(matches=enriched)


@router.put("/{match_id}", response_model=MatchEnvelope)
def update_match_status(
    match_id: int,
    request: StatusUpdateRequest,
    db: Session = Depends(get_db)
):
    """
    Overwrite a match status (pending, shortlisted, rejected, matched).

    Moderation action: no conversation side effect and no pair re-validation.
    """
    db = _require_db(db)

    match = MatchLifecycleManager(db).update_status(match_id, request.status)
    return MatchEnvelope(match=MatchOut.model_validate(match))
