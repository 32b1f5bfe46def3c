"""dscache: query and point-key caching in front of a document datastore."""

from dscache.cache import CacheOptions, FixedTTL, PerStoreTTL
from dscache.client import DatastoreCache, close_cache, get_cache, init_cache
from dscache.config import CacheSettings
from dscache.datastore import Entity, Filter, Key, Order, Query, QueryResponse
from dscache.errors import (
    CacheError,
    FetchError,
    NoDistributedStoreError,
    NotFoundError,
    StoreTransportError,
)

__version__ = "0.1.0"

__all__ = [
    "CacheError",
    "CacheOptions",
    "CacheSettings",
    "DatastoreCache",
    "Entity",
    "FetchError",
    "Filter",
    "FixedTTL",
    "Key",
    "NoDistributedStoreError",
    "NotFoundError",
    "Order",
    "PerStoreTTL",
    "Query",
    "QueryResponse",
    "StoreTransportError",
    "close_cache",
    "get_cache",
    "init_cache",
]
