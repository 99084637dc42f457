"""
User Model
Identity record owned by the profile service; read-only for the match engine
"""

from sqlalchemy import Column, String, Boolean, DateTime, CheckConstraint
from sqlalchemy.sql import func
from matcher.database import Base


class User(Base):
    """
    A creator or a brand account.

    `verified` is flipped by an admin action outside this service.
    """
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    role = Column(String(20), nullable=False, index=True)
    verified = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("role IN ('creator', 'brand')", name="ck_users_role"),
    )

    def __repr__(self):
        return f"<User(id='{self.id}', role='{self.role}', verified={self.verified})>"
