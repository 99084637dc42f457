"""
Profile Models
Role-specific profiles for creators and brands (one-to-one with User)
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.sql import func
from matcher.database import Base


class CreatorProfile(Base):
    """Social presence of a creator. Reach is the sum of both follower counts."""
    __tablename__ = "creator_profiles"

    user_id = Column(String(64), ForeignKey("users.id"), primary_key=True)

    instagram_handle = Column(String(100), nullable=True)
    tiktok_handle = Column(String(100), nullable=True)
    follower_count_ig = Column(Integer, nullable=True)
    follower_count_tiktok = Column(Integer, nullable=True)
    bio = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "instagram_handle": self.instagram_handle,
            "tiktok_handle": self.tiktok_handle,
            "follower_count_ig": self.follower_count_ig,
            "follower_count_tiktok": self.follower_count_tiktok,
            "bio": self.bio,
        }

    def __repr__(self):
        return f"<CreatorProfile(user_id='{self.user_id}', ig='{self.instagram_handle}', tiktok='{self.tiktok_handle}')>"


class BrandProfile(Base):
    """Company details of a brand. ad_spend_range is one of the budget bucket keys."""
    __tablename__ = "brand_profiles"

    user_id = Column(String(64), ForeignKey("users.id"), primary_key=True)

    company_name = Column(String(255), nullable=False)
    vertical = Column(String(50), nullable=True)  # fashion, beauty, tech, travel, ...
    ad_spend_range = Column(String(20), nullable=True)  # under-1k ... over-100k
    bio = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "company_name": self.company_name,
            "vertical": self.vertical,
            "ad_spend_range": self.ad_spend_range,
            "bio": self.bio,
        }

    def __repr__(self):
        return f"<BrandProfile(user_id='{self.user_id}', company='{self.company_name}')>"
