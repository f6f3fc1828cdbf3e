"""Application services - engines and the helpers they share."""

from novelsync.application.services.notification_service import (
    EMPTY_LIBRARY_MESSAGE,
    NotificationService,
)
from novelsync.application.services.progress import ProgressThrottle
from novelsync.application.services.retry_policy import RetryPolicy

# Hey future me - the two engines share RetryPolicy/ProgressThrottle and the same
# cursor-based worker pool idiom, but nothing else. SearchEngine is called by the host
# directly, SyncEngine only ever runs as the UPDATE_LIBRARY task handler.
from novelsync.application.services.search_engine import SearchEngine, order_slots
from novelsync.application.services.sync_engine import (
    LAST_UPDATE_TIME_KEY,
    NovelRefreshResult,
    SyncEngine,
    latest_release_epoch,
    parse_release_time,
)

__all__ = [
    "EMPTY_LIBRARY_MESSAGE",
    "LAST_UPDATE_TIME_KEY",
    "NotificationService",
    "NovelRefreshResult",
    "ProgressThrottle",
    "RetryPolicy",
    "SearchEngine",
    "SyncEngine",
    "latest_release_epoch",
    "order_slots",
    "parse_release_time",
]
