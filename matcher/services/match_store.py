"""
Match Store
Persistence for Match rows keyed on the unordered creator/brand pair
"""

from typing import List, Optional, Set
from sqlalchemy import select, update
from sqlalchemy.orm import Session
from sqlalchemy.sql import func
import structlog

from matcher.database import dialect_insert
from matcher.errors import ConflictIgnored, NotFound
from matcher.models import Match, MatchStatus, UserRole

logger = structlog.get_logger(__name__)


def pair_key(user_a: str, user_b: str) -> str:
    """
    Canonical identity of an unordered pair.

    Format: {min_id}:{max_id}
    """
    low, high = sorted((user_a, user_b))
    return f"{low}:{high}"


def _own_and_opposite_columns(role: UserRole):
    if UserRole(role) is UserRole.creator:
        return Match.creator_id, Match.brand_id
    return Match.brand_id, Match.creator_id


class MatchStore:
    """
    Match persistence without check-then-act races.

    Inserts use INSERT ... ON CONFLICT (pair_key) DO NOTHING and status changes
    are single UPDATE statements, so two concurrent decisions for one pair
    always converge on one row. The caller controls the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, match_id: int) -> Optional[Match]:
        return self.db.get(Match, match_id)

    def find_by_pair(self, creator_id: str, brand_id: str) -> Optional[Match]:
        return self.db.query(Match).filter(
            Match.pair_key == pair_key(creator_id, brand_id)
        ).first()

    def insert_match(
        self,
        creator_id: str,
        brand_id: str,
        status: MatchStatus,
        match_score: float,
        scoring_details: Optional[dict] = None
    ) -> Match:
        """
        Insert a new match row for the pair.

        Raises:
            ConflictIgnored: A row for the pair already exists (concurrent writer won)
        """
        key = pair_key(creator_id, brand_id)
        stmt = dialect_insert(self.db, Match).values(
            pair_key=key,
            creator_id=creator_id,
            brand_id=brand_id,
            status=MatchStatus(status).value,
            match_score=match_score,
            scoring_details=scoring_details,
        ).on_conflict_do_nothing(index_elements=["pair_key"])

        result = self.db.execute(stmt)
        if result.rowcount == 0:
            raise ConflictIgnored(f"Match for pair {key} already exists", pair_key=key)

        match = self.db.query(Match).filter(Match.pair_key == key).one()
        logger.info("match_inserted", match_id=match.id, pair_key=key,
                    status=match.status, match_score=match.match_score)
        return match

    def set_status_by_pair(self, creator_id: str, brand_id: str, status: MatchStatus) -> Match:
        """
        Apply a decision status to an existing pair and bump updated_at.

        A rejected row is final for decisions: the UPDATE skips it and the
        row is returned unchanged. match_score is never touched (snapshot
        taken at insert).

        Raises:
            NotFound: No match row for the pair
        """
        key = pair_key(creator_id, brand_id)
        result = self.db.execute(
            update(Match)
            .where(
                Match.pair_key == key,
                Match.status != MatchStatus.rejected.value
            )
            .values(status=MatchStatus(status).value, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )

        match = self.db.query(Match).filter(Match.pair_key == key).first()
        if match is None:
            raise NotFound(f"Match for pair {key} not found", pair_key=key)

        self.db.refresh(match)
        if result.rowcount == 0:
            logger.info("match_rejection_kept", match_id=match.id, pair_key=key,
                        requested_status=MatchStatus(status).value)
        return match

    def set_status(self, match_id: int, status: MatchStatus) -> Match:
        """Overwrite the status of a match by id."""
        result = self.db.execute(
            update(Match)
            .where(Match.id == match_id)
            .values(status=MatchStatus(status).value, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFound(f"Match {match_id} not found", match_id=match_id)

        match = self.db.get(Match, match_id)
        self.db.refresh(match)
        return match

    def list_by_status(self, user_id: str, role: UserRole, status: MatchStatus) -> List[Match]:
        """
        Matches of a user in one status.

        Shortlisted matches are ordered by match_score descending, others by
        most recently updated.
        """
        own_column, _ = _own_and_opposite_columns(role)
        status = MatchStatus(status)

        query = self.db.query(Match).filter(
            own_column == user_id,
            Match.status == status.value
        )
        if status is MatchStatus.shortlisted:
            query = query.order_by(Match.match_score.desc(), Match.id.asc())
        else:
            query = query.order_by(Match.updated_at.desc(), Match.id.desc())

        return query.all()

    def excluded_peers(self, user_id: str, role: UserRole) -> Set[str]:
        """
        Opposite-party ids the user can never be shown again in discovery.

        Any match row counts regardless of status; rejections are match rows
        with status 'rejected', so one indexed query covers both.
        """
        own_column, opposite_column = _own_and_opposite_columns(role)
        rows = self.db.execute(
            select(opposite_column).where(own_column == user_id)
        ).scalars().all()
        return set(rows)
