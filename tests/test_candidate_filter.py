"""
Tests for the discovery candidate filter

Tests cover:
- Exclusion of peers with any existing match
- Candidates without a profile
- Each facet, and facets that do not apply to the candidate role
"""

import pytest
from types import SimpleNamespace

from matcher.services.matching.candidate_filter import DiscoveryFilters, filter_candidates


def creator(user_id, verified=False, **profile):
    fields = dict(instagram_handle=None, tiktok_handle=None,
                  follower_count_ig=None, follower_count_tiktok=None, bio=None)
    fields.update(profile)
    return SimpleNamespace(id=user_id, verified=verified), SimpleNamespace(user_id=user_id, **fields)


def brand(user_id, verified=False, **profile):
    fields = dict(company_name=f"{user_id} Inc", vertical=None, ad_spend_range=None, bio=None)
    fields.update(profile)
    return SimpleNamespace(id=user_id, verified=verified), SimpleNamespace(user_id=user_id, **fields)


def ids(candidates):
    return [c.user.id for c in candidates]


@pytest.fixture
def creator_pool():
    return [
        creator("c1", verified=True, instagram_handle="@sunny", follower_count_ig=5000, bio="beach yoga"),
        creator("c2", tiktok_handle="@techtok", follower_count_tiktok=120000, bio="gadget reviews"),
        creator("c3", instagram_handle="@both", tiktok_handle="@both.tt",
                follower_count_ig=30000, follower_count_tiktok=30000),
    ]


@pytest.fixture
def brand_pool():
    return [
        brand("b1", verified=True, company_name="Glow Labs", vertical="beauty", ad_spend_range="5k-10k"),
        brand("b2", company_name="Byte Shop", vertical="tech", ad_spend_range="25k-50k"),
        brand("b3", company_name="Nomad Co", vertical="travel"),
    ]


class TestExclusion:

    def test_no_filters_returns_pool_in_order(self, creator_pool):
        assert ids(filter_candidates(creator_pool, set(), DiscoveryFilters(), "creator")) == ["c1", "c2", "c3"]

    def test_excluded_peers_removed(self, creator_pool):
        result = filter_candidates(creator_pool, {"c2"}, DiscoveryFilters(), "creator")
        assert ids(result) == ["c1", "c3"]

    def test_candidates_without_profile_dropped(self, brand_pool):
        pool = brand_pool + [(SimpleNamespace(id="b4", verified=False), None)]
        assert "b4" not in ids(filter_candidates(pool, set(), DiscoveryFilters(), "brand"))


class TestCreatorFacets:

    def test_reach_range(self, creator_pool):
        """Reach is the sum of both platforms."""
        filters = DiscoveryFilters(min_reach=50000, max_reach=100000)
        assert ids(filter_candidates(creator_pool, set(), filters, "creator")) == ["c3"]

    def test_reach_bounds_inclusive(self, creator_pool):
        filters = DiscoveryFilters(min_reach=5000, max_reach=5000)
        assert ids(filter_candidates(creator_pool, set(), filters, "creator")) == ["c1"]

    def test_platform_requires_handle(self, creator_pool):
        filters = DiscoveryFilters(platform="tiktok")
        assert ids(filter_candidates(creator_pool, set(), filters, "creator")) == ["c2", "c3"]

    def test_per_platform_follower_range(self, creator_pool):
        """Missing counts fail a constrained range."""
        filters = DiscoveryFilters(min_followers_ig=10000)
        assert ids(filter_candidates(creator_pool, set(), filters, "creator")) == ["c3"]

    def test_search_matches_handles_and_bio(self, creator_pool):
        assert ids(filter_candidates(creator_pool, set(), DiscoveryFilters(search="TECH"), "creator")) == ["c2"]
        assert ids(filter_candidates(creator_pool, set(), DiscoveryFilters(search="yoga"), "creator")) == ["c1"]

    def test_verified_strict(self, creator_pool):
        verified = filter_candidates(creator_pool, set(), DiscoveryFilters(verified=True), "creator")
        unverified = filter_candidates(creator_pool, set(), DiscoveryFilters(verified=False), "creator")
        assert ids(verified) == ["c1"]
        assert ids(unverified) == ["c2", "c3"]

    def test_brand_facet_rejects_creators(self, creator_pool):
        """A vertical filter cannot be satisfied by creators."""
        assert filter_candidates(creator_pool, set(), DiscoveryFilters(vertical="tech"), "creator") == []


class TestBrandFacets:

    def test_vertical(self, brand_pool):
        assert ids(filter_candidates(brand_pool, set(), DiscoveryFilters(vertical="travel"), "brand")) == ["b3"]

    def test_ad_spend_range(self, brand_pool):
        filters = DiscoveryFilters(ad_spend_range="25k-50k")
        assert ids(filter_candidates(brand_pool, set(), filters, "brand")) == ["b2"]

    def test_search_on_company_name(self, brand_pool):
        assert ids(filter_candidates(brand_pool, set(), DiscoveryFilters(search="nomad"), "brand")) == ["b3"]

    def test_creator_facet_rejects_brands(self, brand_pool):
        assert filter_candidates(brand_pool, set(), DiscoveryFilters(min_reach=0), "brand") == []

    def test_facets_and_combined(self, brand_pool):
        filters = DiscoveryFilters(vertical="beauty", verified=False)
        assert filter_candidates(brand_pool, set(), filters, "brand") == []

    def test_applied_lists_only_set_facets(self):
        assert DiscoveryFilters(vertical="tech", verified=False).applied() == {"vertical": "tech", "verified": False}
