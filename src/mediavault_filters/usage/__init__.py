"""
Usage module - Ledger, stores, suggestions and analytics.

- UsageLedger / UsageRecorder: record applications, synchronously or queued
- InMemoryUsageStore / SQLiteUsageStore: UsageStore implementations
- SuggestionEngine: ranked suggestions and style profiles
- UsageAnalytics: popular filters and paged history
"""

from mediavault_filters.usage.analytics import (
    FilterAnalytics,
    FilterHistoryPage,
    FilterUsageStats,
    UsageAnalytics,
)
from mediavault_filters.usage.ledger import UsageLedger, UsageRecorder
from mediavault_filters.usage.palette import extract_palette
from mediavault_filters.usage.store import (
    FilterCount,
    InMemoryUsageStore,
    SQLiteUsageStore,
    UsageStore,
)
from mediavault_filters.usage.suggestions import SuggestionEngine, rank_suggestions

__all__ = [
    "FilterAnalytics",
    "FilterHistoryPage",
    "FilterUsageStats",
    "UsageAnalytics",
    "UsageLedger",
    "UsageRecorder",
    "extract_palette",
    "FilterCount",
    "InMemoryUsageStore",
    "SQLiteUsageStore",
    "UsageStore",
    "SuggestionEngine",
    "rank_suggestions",
]
