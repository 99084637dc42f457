"""
API Schemas for the matches router
Pydantic models for request bodies and responses
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from matcher.models.enums import MatchStatus


class DecisionRequest(BaseModel):
    """A party's swipe on a creator/brand pair."""
    model_config = ConfigDict(populate_by_name=True)

    creator_id: str = Field(alias="creatorId", min_length=1)
    brand_id: str = Field(alias="brandId", min_length=1)
    status: str = MatchStatus.pending.value


class StatusUpdateRequest(BaseModel):
    """Moderation overwrite of a match status."""
    status: str


class MatchOut(BaseModel):
    """Persisted match as returned to callers."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    creator_id: str
    brand_id: str
    match_score: float
    status: str
    scoring_details: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MatchEnvelope(BaseModel):
    match: MatchOut


class DiscoveryItem(BaseModel):
    """One ranked candidate in a discovery page."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    role: str
    profile: Dict[str, Any]
    match_score: float = Field(alias="matchScore")


class DiscoveryResponse(BaseModel):
    matches: List[DiscoveryItem]
    total: int
    limit: int
    offset: int


class ShortlistedMatch(MatchOut):
    """Shortlisted match enriched with the opposite party."""
    user: Optional[Dict[str, Any]] = None
    profile: Optional[Dict[str, Any]] = None


class ShortlistedResponse(BaseModel):
    matches: List[ShortlistedMatch]
