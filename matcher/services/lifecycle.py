"""
Match Lifecycle Manager

Owns the Match state machine:

    (none) --decision--> pending | shortlisted | rejected
    pending | shortlisted --decision--> pending | shortlisted | rejected
    rejected --decision--> rejected (unchanged, no side effect)
    any --moderation--> pending | shortlisted | rejected | matched

Rows are never deleted, so a rejected pair stays excluded from discovery for
both parties. Only moderation can move a match out of `rejected`.

The score is a snapshot taken on first insert and is not recomputed on
later transitions.

Reaching `shortlisted` through a decision emits a shortlist event; the
conversation is created from that event best-effort after the transition
has committed.
"""

from typing import List, Optional, Tuple
import structlog
from sqlalchemy.orm import Session

from matcher.errors import ConflictIgnored, InvalidInput, ProfileNotFound
from matcher.models import (
    Match,
    MatchStatus,
    User,
    UserRole,
    DECISION_STATUSES,
    parse_role,
    parse_status,
)
from matcher.services.match_store import MatchStore, pair_key
from matcher.services.matching.scorer import score_breakdown
from matcher.services.profile_store import ProfileStore
from matcher.services.shortlist_events import ShortlistEventRelay

logger = structlog.get_logger(__name__)


class MatchLifecycleManager:
    """
    Usage:
        manager = MatchLifecycleManager(db, event_relay=relay)
        match = manager.record_decision("creator-1", "brand-7", "shortlisted")
    """

    def __init__(self, db: Session, event_relay: Optional[ShortlistEventRelay] = None):
        """
        Args:
            db: SQLAlchemy session (request scoped)
            event_relay: Shortlist event relay; without one no conversation is created
        """
        self.db = db
        self.matches = MatchStore(db)
        self.profiles = ProfileStore(db)
        self.event_relay = event_relay

    def record_decision(self, creator_id: str, brand_id: str, status) -> Match:
        """
        Create or update the match for a pair with a party's decision.

        Steps:
        1. Look up the existing match for the unordered pair
        2. Absent: score the pair and insert with `status`
        3. Present (or lost an insert race): overwrite status, keep score;
           a rejected match is returned unchanged
        4. Shortlisted: enqueue the shortlist event in the same transaction
        5. Commit, then deliver the event best-effort

        Raises:
            InvalidInput: Status not a decision status, or ids of the wrong roles
            ProfileNotFound: A user, or a profile needed for scoring, is missing
        """
        status = parse_status(status, DECISION_STATUSES)
        creator_user, brand_user = self._load_pair_users(creator_id, brand_id)
        creator_id, brand_id = creator_user.id, brand_user.id

        log = logger.bind(creator_id=creator_id, brand_id=brand_id,
                          pair_key=pair_key(creator_id, brand_id), status=status.value)

        message_id = None
        try:
            match = self.matches.find_by_pair(creator_id, brand_id)

            if match is None:
                match = self._insert_or_update(creator_user, brand_user, status, log)
            else:
                previous = match.status
                match = self.matches.set_status_by_pair(creator_id, brand_id, status)
                log.info("match_status_changed", match_id=match.id,
                         previous_status=previous, current_status=match.status)

            if match.status == MatchStatus.shortlisted.value and self.event_relay is not None:
                message_id = self.event_relay.enqueue(self.db, match)

            match_id = match.id
            self.db.commit()

        except Exception:
            self.db.rollback()
            raise

        if message_id is not None:
            self._deliver(message_id, match_id, log)

        return match

    def update_status(self, match_id: int, status) -> Match:
        """
        Moderation overwrite of a match status by id. No side effects.

        Raises:
            InvalidInput: Unknown status
            NotFound: No match with this id
        """
        status = parse_status(status)
        try:
            match = self.matches.set_status(match_id, status)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("match_status_overwritten", match_id=match_id, status=status.value)
        return match

    def list_by_status(self, user_id: str, role, status) -> List[Match]:
        """Matches of a user in one status (shortlisted: best score first)."""
        role = parse_role(role)
        status = parse_status(status)
        return self.matches.list_by_status(user_id, role, status)

    def _insert_or_update(self, creator_user: User, brand_user: User, status: MatchStatus, log) -> Match:
        creator_profile = self.profiles.get_creator_profile(creator_user.id)
        brand_profile = self.profiles.get_brand_profile(brand_user.id)
        if creator_profile is None or brand_profile is None:
            missing = creator_user.id if creator_profile is None else brand_user.id
            raise ProfileNotFound(f"Profile not found for user {missing}", user_id=missing)

        breakdown = score_breakdown(creator_profile, creator_user, brand_profile, brand_user)

        try:
            return self.matches.insert_match(
                creator_id=creator_user.id,
                brand_id=brand_user.id,
                status=status,
                match_score=breakdown.total,
                scoring_details=breakdown.to_dict(),
            )
        except ConflictIgnored as e:
            # A concurrent decision inserted the pair first; its score snapshot stands
            log.info("match_pair_conflict_ignored", code=e.code)
            return self.matches.set_status_by_pair(creator_user.id, brand_user.id, status)

    def _load_pair_users(self, creator_id: str, brand_id: str) -> Tuple[User, User]:
        """Load both users, swapping ids passed in the wrong order."""
        if not creator_id or not brand_id:
            raise InvalidInput("Creator ID and Brand ID are required")
        if creator_id == brand_id:
            raise InvalidInput("Creator ID and Brand ID must differ")

        creator_user = self.profiles.get_user(creator_id)
        brand_user = self.profiles.get_user(brand_id)
        for user_id, user in ((creator_id, creator_user), (brand_id, brand_user)):
            if user is None:
                raise ProfileNotFound(f"User not found: {user_id}", user_id=user_id)

        if creator_user.role == UserRole.brand.value and brand_user.role == UserRole.creator.value:
            creator_user, brand_user = brand_user, creator_user

        if creator_user.role != UserRole.creator.value or brand_user.role != UserRole.brand.value:
            raise InvalidInput(
                "A decision needs one creator and one brand",
                creator_role=creator_user.role,
                brand_role=brand_user.role,
            )
        return creator_user, brand_user

    def _deliver(self, message_id: int, match_id: int, log) -> None:
        # The transition is committed; delivery problems are logged only
        try:
            self.event_relay.dispatch(message_id)
        except Exception as e:
            log.error("shortlist_event_dispatch_crashed",
                      match_id=match_id,
                      outbox_message_id=message_id,
                      error=str(e),
                      exc_info=True)
