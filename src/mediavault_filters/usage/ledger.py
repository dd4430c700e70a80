"""
Usage Ledger - Records filter applications and per-user counters.

UsageLedger writes synchronously to a UsageStore. UsageRecorder wraps it in
a BackgroundQueue so the filter pipeline can hand off usage events without
waiting: events are best-effort and recorded at most once.
"""

from __future__ import annotations

import logging

from mediavault_filters.core.errors import InvalidInput
from mediavault_filters.core.models import FilterApplication, FilterConfig
from mediavault_filters.core.settings import UsageSettings
from mediavault_filters.core.tasks import BackgroundQueue
from mediavault_filters.usage.store import InMemoryUsageStore, UsageStore

logger = logging.getLogger(__name__)


class UsageLedger:
    """
    Append-only application log plus incrementally updated preferences.

    Usage:
        ledger = UsageLedger(SQLiteUsageStore("usage.db"))
        ledger.record(media_id, user_id, "dramatic")
    """

    def __init__(self, store: UsageStore | None = None, settings: UsageSettings | None = None):
        self.store = store if store is not None else InMemoryUsageStore()
        self.settings = settings or UsageSettings()

    def record(
        self,
        media_id: str,
        user_id: str,
        filter_id: str,
        override: FilterConfig | None = None,
    ) -> FilterApplication:
        """
        Append an application and bump the user's counter for the filter.

        Raises:
            InvalidInput: Missing ids
            StorageFailure: Store write failed
        """
        for name, value in (("media_id", media_id), ("user_id", user_id), ("filter_id", filter_id)):
            if not value:
                raise InvalidInput(f"Usage record needs a {name}")

        application = FilterApplication(
            media_id=media_id,
            user_id=user_id,
            filter_id=filter_id,
            override_config=override,
        )
        self.store.add_application(application)
        self.store.increment(
            user_id,
            filter_id,
            1,
            used_at=application.applied_at,
            recently_used_limit=self.settings.recently_used_limit,
        )
        logger.debug("Recorded %s on %s for %s", filter_id, media_id, user_id)
        return application

    def increment_usage(self, user_id: str, filter_id: str, amount: int = 1) -> None:
        """
        Atomically add ``amount`` to the (user, filter) counter.

        Raises:
            InvalidInput: amount is not a positive integer
            StorageFailure: Store write failed
        """
        self.store.increment(
            user_id,
            filter_id,
            amount,
            recently_used_limit=self.settings.recently_used_limit,
        )


class UsageRecorder:
    """
    Non-blocking front for UsageLedger.record.

    ``submit`` returns at once and never raises. Failures are logged by the
    queue workers; nothing is retried.
    """

    def __init__(self, ledger: UsageLedger, settings: UsageSettings | None = None):
        settings = settings or ledger.settings
        self.ledger = ledger
        self.queue = BackgroundQueue(
            maxsize=settings.recorder_queue_size,
            workers=settings.recorder_workers,
            name="usage-recorder",
        )

    def submit(
        self,
        media_id: str,
        user_id: str,
        filter_id: str,
        override: FilterConfig | None = None,
    ) -> bool:
        """Queue a usage event. Returns False if it was dropped."""
        return self.queue.submit(
            f"record:{filter_id}",
            self.ledger.record,
            media_id,
            user_id,
            filter_id,
            override,
        )

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for queued events to be written."""
        return self.queue.flush(timeout)

    def close(self, timeout: float | None = 5.0) -> None:
        self.queue.close(timeout)
