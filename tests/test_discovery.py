"""
Tests for DiscoveryService

Tests cover:
- Ranked results of the opposite role
- Symmetric exclusion of decided pairs
- Pagination totals and bounds
- Input validation before any lookup
"""

import pytest

from matcher.errors import InvalidInput, ProfileNotFound
from matcher.services.discovery import DiscoveryService
from matcher.services.lifecycle import MatchLifecycleManager
from matcher.services.matching import DiscoveryFilters


@pytest.fixture
def marketplace(scenario_pair, make_creator, make_brand):
    """creator-c and brand-b plus a few weaker counterparts on each side."""
    make_brand("brand-empty")
    make_brand("brand-tech", vertical="tech", ad_spend_range="1k-5k", bio="gadgets and software")
    make_brand("brand-draft", profile=False)
    make_creator("creator-new", instagram_handle="@fresh")
    make_creator("creator-pro", verified=True, instagram_handle="@pro", follower_count_ig=90000,
                 bio="outdoor lifestyle travel photography")


class TestDiscover:

    def test_returns_opposite_role_ranked(self, db, marketplace):
        page = DiscoveryService(db).discover("creator-c", "creator")

        assert page.total == 3
        assert [m.user_id for m in page.matches][0] == "brand-b"
        assert all(m.role == "brand" for m in page.matches)
        scores = [m.match_score for m in page.matches]
        assert scores == sorted(scores, reverse=True)

    def test_user_without_profile_not_a_candidate(self, db, marketplace):
        page = DiscoveryService(db).discover("creator-c", "creator")
        assert "brand-draft" not in [m.user_id for m in page.matches]

    def test_brand_discovers_creators(self, db, marketplace):
        page = DiscoveryService(db).discover("brand-b", "brand")
        assert {m.user_id for m in page.matches} == {"creator-c", "creator-new", "creator-pro"}
        assert all(m.role == "creator" for m in page.matches)

    def test_filters_applied(self, db, marketplace):
        page = DiscoveryService(db).discover("creator-c", "creator", DiscoveryFilters(vertical="tech"))
        assert [m.user_id for m in page.matches] == ["brand-tech"]
        assert page.total == 1

    def test_score_matches_snapshot_taken_on_decision(self, db, marketplace):
        discovered = DiscoveryService(db).discover("creator-c", "creator").matches[0]
        match = MatchLifecycleManager(db).record_decision("creator-c", discovered.user_id, "pending")
        assert match.match_score == discovered.match_score


class TestExclusion:

    def test_rejection_excludes_both_directions(self, db, marketplace):
        """Brand rejects creator: neither sees the other again."""
        MatchLifecycleManager(db).record_decision("creator-c", "brand-b", "rejected")

        creator_view = DiscoveryService(db).discover("creator-c", "creator")
        brand_view = DiscoveryService(db).discover("brand-b", "brand")

        assert "brand-b" not in [m.user_id for m in creator_view.matches]
        assert "creator-c" not in [m.user_id for m in brand_view.matches]
        assert creator_view.total == 2

    @pytest.mark.parametrize("status", ["pending", "shortlisted"])
    def test_any_status_excludes(self, db, marketplace, status):
        MatchLifecycleManager(db).record_decision("creator-c", "brand-tech", status)
        page = DiscoveryService(db).discover("creator-c", "creator")
        assert "brand-tech" not in [m.user_id for m in page.matches]


class TestPagination:

    def test_pages_and_total(self, db, marketplace):
        service = DiscoveryService(db)
        full = service.discover("creator-c", "creator")
        first = service.discover("creator-c", "creator", limit=2, offset=0)
        second = service.discover("creator-c", "creator", limit=2, offset=2)

        assert first.total == second.total == 3
        assert [m.user_id for m in first.matches + second.matches] == [m.user_id for m in full.matches]
        assert (first.limit, first.offset) == (2, 0)

    def test_offset_past_end(self, db, marketplace):
        page = DiscoveryService(db).discover("creator-c", "creator", offset=50)
        assert page.matches == []
        assert page.total == 3

    def test_default_limit(self, db, marketplace):
        assert DiscoveryService(db).discover("creator-c", "creator").limit == 50

    def test_oversized_limit_is_capped(self, db, marketplace):
        page = DiscoveryService(db).discover("creator-c", "creator", limit=500)
        assert page.limit == 200
        assert len(page.matches) == page.total == 3


class TestValidation:

    @pytest.mark.parametrize("kwargs", [
        {"role": "agency"},
        {"role": None},
        {"limit": 0},
        {"offset": -1},
        {"filters": DiscoveryFilters(min_reach=-5)},
        {"filters": DiscoveryFilters(min_reach=10, max_reach=5)},
        {"filters": DiscoveryFilters(platform="youtube")},
    ])
    def test_invalid_input(self, db, marketplace, kwargs):
        params = {"user_id": "creator-c", "role": "creator"}
        params.update(kwargs)
        with pytest.raises(InvalidInput):
            DiscoveryService(db).discover(**params)

    def test_missing_user_id(self, db):
        with pytest.raises(InvalidInput):
            DiscoveryService(db).discover("", "creator")

    def test_unknown_requester(self, db, marketplace):
        with pytest.raises(ProfileNotFound):
            DiscoveryService(db).discover("nobody", "creator")

    def test_requester_without_profile(self, db, marketplace):
        with pytest.raises(ProfileNotFound):
            DiscoveryService(db).discover("brand-draft", "brand")

    def test_role_mismatch(self, db, marketplace):
        with pytest.raises(InvalidInput):
            DiscoveryService(db).discover("brand-b", "creator")
