"""
Tests for usage analytics and filter history.
"""

from datetime import timedelta

import pytest

from mediavault_filters.core.models import FilterApplication, FilterCategory, utcnow
from mediavault_filters.usage.analytics import UsageAnalytics
from mediavault_filters.usage.store import InMemoryUsageStore


@pytest.fixture
def store():
    store = InMemoryUsageStore()
    now = utcnow()
    history = [
        ("u1", "noir", 5),
        ("u1", "dramatic", 3),
        ("u1", "cozy", 2),
        ("u1", "gone", 1),
        ("u2", "anime", 4),
    ]
    minute = 0
    for user_id, filter_id, times in history:
        for _ in range(times):
            minute += 1
            store.add_application(
                FilterApplication("m1", user_id, filter_id, applied_at=now - timedelta(minutes=minute))
            )
    return store


class TestFilterAnalytics:
    """Tests for get_filter_analytics."""

    def test_user_report(self, store):
        report = UsageAnalytics(store).get_filter_analytics("u1")
        assert report.total_applications == 11
        assert [(s.preset.id, s.count, s.rank) for s in report.popular_filters] == [
            ("noir", 5, 1),
            ("dramatic", 3, 2),
            ("cozy", 2, 3),
        ]
        assert report.category_stats == {FilterCategory.ARTISTIC: 5, FilterCategory.MOOD: 5}
        assert len(report.recent_activity) == 10
        assert report.recent_activity[0].filter_id == "noir"

    def test_global_report(self, store):
        report = UsageAnalytics(store).get_filter_analytics()
        assert report.total_applications == 15
        assert report.category_stats[FilterCategory.ARTISTIC] == 9

    def test_popular_list_is_capped(self, store):
        analytics = UsageAnalytics(store)
        analytics.popular_limit = 2
        assert len(analytics.get_filter_analytics().popular_filters) == 2

    def test_empty_user(self, store):
        report = UsageAnalytics(store).get_filter_analytics("nobody")
        assert report.total_applications == 0
        assert report.popular_filters == []
        assert report.category_stats == {}


class TestFilterHistory:
    """Tests for get_filter_history."""

    def test_first_page(self, store):
        page = UsageAnalytics(store).get_filter_history("u1", page=1, limit=4)
        assert len(page.applications) == 4
        assert page.total == 11
        assert page.total_pages == 3

    def test_last_page(self, store):
        page = UsageAnalytics(store).get_filter_history("u1", page=3, limit=4)
        assert [a.filter_id for a in page.applications] == ["cozy", "cozy", "gone"]

    @pytest.mark.parametrize("page,limit,expected", [
        (0, 20, (1, 20)),
        (-3, 5, (1, 5)),
        (1, 0, (1, 20)),
        (2, 101, (2, 20)),
        (1, 100, (1, 100)),
    ])
    def test_out_of_range_falls_back_to_defaults(self, store, page, limit, expected):
        result = UsageAnalytics(store).get_filter_history("u1", page=page, limit=limit)
        assert (result.page, result.limit) == expected

    def test_no_history(self, store):
        page = UsageAnalytics(store).get_filter_history("nobody")
        assert page.applications == []
        assert page.total_pages == 0
