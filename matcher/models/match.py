"""
Match Model
One row per creator/brand pair, tracking the pair through its lifecycle
"""

from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey, JSON, Index, CheckConstraint
from sqlalchemy.sql import func
from matcher.database import Base


class Match(Base):
    """
    Proposed pairing between a creator and a brand.

    `pair_key` is the canonical unordered pair identity (min id, max id) and
    carries the uniqueness constraint, so concurrent decisions for the same
    pair resolve to a single row.

    `match_score` is a snapshot taken when the row is first inserted and is
    never rewritten on status transitions.
    """
    __tablename__ = "matches"

    # Primary Key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Pair identity
    pair_key = Column(String(140), unique=True, nullable=False)
    creator_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    brand_id = Column(String(64), ForeignKey("users.id"), nullable=False)

    # Snapshot score (0.00 to 100.00)
    match_score = Column(Numeric(5, 2, asdecimal=False), nullable=False)

    # Lifecycle
    status = Column(String(20), nullable=False, default="pending")

    # Component scores at creation time
    scoring_details = Column(JSON, nullable=True)
    """
    Example scoring_details structure:
    {
        "vertical": 30.0,
        "reach_budget": 23.125,
        "verification": 0.0,
        "completeness": 10.0,
        "bio_overlap": 8.0,
        "total": 71.13
    }
    """

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'shortlisted', 'rejected', 'matched')",
            name="ck_matches_status"
        ),
        # Exclusion and shortlist lookups from either side
        Index("ix_matches_creator_status", "creator_id", "status"),
        Index("ix_matches_brand_status", "brand_id", "status"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "creator_id": self.creator_id,
            "brand_id": self.brand_id,
            "match_score": self.match_score,
            "status": self.status,
            "scoring_details": self.scoring_details,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Match(id={self.id}, creator='{self.creator_id}', brand='{self.brand_id}', status='{self.status}', score={self.match_score})>"
