"""
Usage Analytics - Read-only reports over the usage ledger.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from mediavault_filters.core.models import FilterApplication, FilterCategory, FilterPreset
from mediavault_filters.filters.presets import PresetResolver
from mediavault_filters.usage.store import UsageStore

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass
class FilterUsageStats:
    """One filter's application count and its rank (1 = most used)."""
    preset: FilterPreset
    count: int
    rank: int


@dataclass
class FilterAnalytics:
    total_applications: int
    popular_filters: list[FilterUsageStats] = field(default_factory=list)
    category_stats: dict[FilterCategory, int] = field(default_factory=dict)
    recent_activity: list[FilterApplication] = field(default_factory=list)


@dataclass
class FilterHistoryPage:
    applications: list[FilterApplication]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


class UsageAnalytics:
    """Popular filters, category breakdown and paged history."""

    popular_limit = 10
    recent_limit = 10

    def __init__(self, store: UsageStore, presets: PresetResolver | None = None):
        self.store = store
        self.presets = presets or PresetResolver()

    def get_filter_analytics(self, user_id: str | None = None) -> FilterAnalytics:
        """
        Usage report for one user, or for everyone when user_id is None.

        Filters whose preset no longer resolves count toward the total but
        are left out of the popular list and category breakdown.
        """
        counts = self.store.filter_counts(user_id=user_id)

        popular: list[FilterUsageStats] = []
        categories: dict[FilterCategory, int] = {}
        for entry in counts:
            preset = self.presets.get(entry.filter_id)
            if preset is None:
                continue
            categories[preset.category] = categories.get(preset.category, 0) + entry.count
            if len(popular) < self.popular_limit:
                popular.append(FilterUsageStats(preset=preset, count=entry.count, rank=len(popular) + 1))

        return FilterAnalytics(
            total_applications=self.store.count_applications(user_id),
            popular_filters=popular,
            category_stats=categories,
            recent_activity=self.store.list_applications(user_id, limit=self.recent_limit),
        )

    def get_filter_history(self, user_id: str, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> FilterHistoryPage:
        """
        One page of a user's applications, newest first.

        A page below 1 or a limit outside [1, 100] falls back to the default.
        """
        if page < 1:
            page = DEFAULT_PAGE
        if limit < 1 or limit > MAX_LIMIT:
            limit = DEFAULT_LIMIT

        return FilterHistoryPage(
            applications=self.store.list_applications(user_id, limit=limit, offset=(page - 1) * limit),
            page=page,
            limit=limit,
            total=self.store.count_applications(user_id),
        )
