from memory_grove_tracker.backend.base import (
    BackendError,
    BackendTimeout,
    ChangeFeed,
    CollectionBackend,
    Subscription,
)
from memory_grove_tracker.backend.local import LocalBackend
from memory_grove_tracker.backend.polling import PollingChangeFeed
from memory_grove_tracker.backend.supabase_rest import SupabaseCredentials, SupabaseRestClient

__all__ = [
    "BackendError",
    "BackendTimeout",
    "ChangeFeed",
    "CollectionBackend",
    "LocalBackend",
    "PollingChangeFeed",
    "Subscription",
    "SupabaseCredentials",
    "SupabaseRestClient",
]
