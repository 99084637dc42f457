"""
Compatibility Scorer

Scores a (creator, brand) pair on a 0-100 scale as the weighted sum of five
independent components:

- Vertical presence (30): brand has a vertical set. There is no creator-side
  niche field, so this is a presence check only.
- Reach/budget alignment (25): creator reach against the brand's ad spend
  bucket, both normalized to 0-1.
- Mutual verification (15)
- Profile completeness (10): average of both profiles' completeness ratios.
- Bio token overlap (20): shared words longer than 3 characters.

Pure and total: missing optional fields lower the score instead of raising.
"""

from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

# Component weights (sum to 100)
VERTICAL_WEIGHT = 30.0
REACH_BUDGET_WEIGHT = 25.0
VERIFICATION_WEIGHT = 15.0
COMPLETENESS_WEIGHT = 10.0
BIO_OVERLAP_WEIGHT = 20.0

# Normalization ceilings
REACH_CEILING = 500_000
BUDGET_CEILING = 100_000

# Minimum word length (exclusive) counted in bio overlap
BIO_MIN_WORD_LENGTH = 3

# Representative spend per ad spend bucket
BUDGET_RANGE_VALUES: Dict[str, int] = {
    "under-1k": 500,
    "1k-5k": 3000,
    "5k-10k": 7500,
    "10k-25k": 17500,
    "25k-50k": 37500,
    "50k-100k": 75000,
    "over-100k": 150000,
}


@dataclass
class ScoreBreakdown:
    """Weighted component scores and the rounded total."""
    vertical: float
    reach_budget: float
    verification: float
    completeness: float
    bio_overlap: float
    total: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def creator_reach(profile) -> int:
    """Sum of Instagram and TikTok followers; missing counts are 0."""
    return (profile.follower_count_ig or 0) + (profile.follower_count_tiktok or 0)


def budget_value(ad_spend_range: Optional[str]) -> int:
    """Representative budget for an ad spend bucket; unknown or missing is 0."""
    if not ad_spend_range:
        return 0
    return BUDGET_RANGE_VALUES.get(ad_spend_range, 0)


def score_vertical(brand_profile) -> float:
    return VERTICAL_WEIGHT if brand_profile.vertical else 0.0


def score_reach_budget(reach: int, budget: int) -> float:
    """
    25 * (1 - |reachRatio - budgetRatio|), half points when both are zero.

    Non-increasing in the distance between the two ratios.
    """
    if reach <= 0 and budget <= 0:
        return REACH_BUDGET_WEIGHT / 2

    reach_ratio = min(1.0, max(reach, 0) / REACH_CEILING)
    budget_ratio = min(1.0, max(budget, 0) / BUDGET_CEILING)
    return REACH_BUDGET_WEIGHT * (1 - abs(reach_ratio - budget_ratio))


def score_verification(creator_verified: bool, brand_verified: bool) -> float:
    if creator_verified and brand_verified:
        return VERIFICATION_WEIGHT
    if creator_verified or brand_verified:
        return VERIFICATION_WEIGHT / 2
    return 0.0


def creator_completeness(profile) -> float:
    """Fraction (0-1) of the five creator fields that are filled."""
    filled = sum([
        bool(profile.instagram_handle),
        bool(profile.tiktok_handle),
        (profile.follower_count_ig or 0) > 0,
        (profile.follower_count_tiktok or 0) > 0,
        bool(profile.bio),
    ])
    return filled / 5


def brand_completeness(profile) -> float:
    """Fraction (0-1) of the four brand fields that are filled."""
    filled = sum([
        bool(profile.company_name),
        bool(profile.vertical),
        bool(profile.ad_spend_range),
        bool(profile.bio),
    ])
    return filled / 4


def score_completeness(creator_profile, brand_profile) -> float:
    average = (creator_completeness(creator_profile) + brand_completeness(brand_profile)) / 2
    return COMPLETENESS_WEIGHT * average


def bio_overlap_ratio(creator_bio: str, brand_bio: str) -> float:
    """
    Shared long words over the longer bio's word count, capped at 1.

    Example:
        >>> bio_overlap_ratio("lifestyle and travel content", "travel gear for outdoor lifestyle")
        0.4
    """
    creator_words = creator_bio.lower().split()
    brand_words = brand_bio.lower().split()
    if not creator_words or not brand_words:
        return 0.0

    shared = {
        word for word in creator_words
        if len(word) > BIO_MIN_WORD_LENGTH
    } & set(brand_words)
    return min(1.0, len(shared) / max(len(creator_words), len(brand_words)))


def score_bio_overlap(creator_bio: Optional[str], brand_bio: Optional[str]) -> float:
    # Whitespace-only bios count as absent
    if not (creator_bio or "").strip() or not (brand_bio or "").strip():
        return BIO_OVERLAP_WEIGHT / 2
    return BIO_OVERLAP_WEIGHT * bio_overlap_ratio(creator_bio, brand_bio)


def round_score(value: float) -> float:
    """Round half-up to 2 decimals and clamp to [0, 100]."""
    # round(value, 9) absorbs float noise such as 71.12499999999999
    rounded = Decimal(str(round(value, 9))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return min(100.0, max(0.0, float(rounded)))


def score_breakdown(creator_profile, creator_user, brand_profile, brand_user) -> ScoreBreakdown:
    """
    Compute every component for a creator/brand pair.

    Args:
        creator_profile: CreatorProfile (or any object with the same fields)
        creator_user: User owning the creator profile
        brand_profile: BrandProfile
        brand_user: User owning the brand profile

    Returns:
        ScoreBreakdown with unrounded components and the rounded total
    """
    vertical = score_vertical(brand_profile)
    reach_budget = score_reach_budget(
        creator_reach(creator_profile),
        budget_value(brand_profile.ad_spend_range),
    )
    verification = score_verification(bool(creator_user.verified), bool(brand_user.verified))
    completeness = score_completeness(creator_profile, brand_profile)
    bio_overlap = score_bio_overlap(creator_profile.bio, brand_profile.bio)

    total = round_score(vertical + reach_budget + verification + completeness + bio_overlap)

    return ScoreBreakdown(
        vertical=vertical,
        reach_budget=reach_budget,
        verification=verification,
        completeness=completeness,
        bio_overlap=bio_overlap,
        total=total,
    )


def calculate_match_score(creator_profile, creator_user, brand_profile, brand_user) -> float:
    """Compatibility score in [0, 100], rounded to 2 decimals."""
    return score_breakdown(creator_profile, creator_user, brand_profile, brand_user).total
