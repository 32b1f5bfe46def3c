"""Cache key schema for dscache.

Key format:
- point keys: {keys_prefix}{namespace}|{kind}:{id}:{kind}:{id}...
- queries:    {queries_prefix}{kinds}|{namespace}|{filters}|{orders}|{select}|
              {group_by}|{start}|{end}|{limit}|{offset}
- entity-kind sets: {queries_prefix}{kind}

Identifiers and filter values are rendered with the canonical orjson
encoding, so ``1`` and ``"1"`` give different keys. Filters are sorted
because their order does not change the result set; orders are kept as
given because it does. Collisions between distinct queries are possible
only when a component contains the separator characters in a way that
mimics a neighbouring component.
"""

from __future__ import annotations

from dscache.cache.codec import canonical
from dscache.config import CachePrefix
from dscache.datastore import Filter, Key, Query


def _filter_part(item: Filter) -> str:
    return f"{item.name}{item.op}{canonical(item.value)}"


def stringify_query(query: Query) -> str:
    """Deterministic string form of a query."""
    if not isinstance(query, Query):
        raise TypeError(f"Expected a Query, got {type(query).__name__}")

    filters = sorted(_filter_part(item) for item in query.filters)
    orders = [f"{order.name}{'-' if order.descending else '+'}" for order in query.orders]

    parts = [
        ":".join(query.kinds),
        query.namespace or "",
        ",".join(filters),
        ",".join(orders),
        ",".join(query.select),
        ",".join(query.group_by),
        query.start or "",
        query.end or "",
        str(query.limit),
        str(query.offset),
    ]
    return "|".join(parts)


def stringify_key(key: Key) -> str:
    """Deterministic string form of a point key."""
    if not isinstance(key, Key):
        raise TypeError(f"Expected a Key, got {type(key).__name__}")

    segments = []
    for index, element in enumerate(key.path):
        # kinds are plain names, identifiers keep their type
        segments.append(str(element) if index % 2 == 0 else canonical(element))
    return f"{key.namespace or ''}|{':'.join(segments)}"


class CacheKeys:
    """Cache key generator bound to the configured namespace prefixes."""

    def __init__(self, prefix: CachePrefix | None = None) -> None:
        self.prefix = prefix or CachePrefix()
        keys, queries = self.prefix.keys, self.prefix.queries
        if keys.startswith(queries) or queries.startswith(keys):
            raise ValueError(f"Cache prefixes overlap: {keys!r} and {queries!r}")

    def key(self, key: Key) -> str:
        """Cache key for a point lookup."""
        return f"{self.prefix.keys}{stringify_key(key)}"

    def query(self, query: Query) -> str:
        """Cache key for a query result."""
        return f"{self.prefix.queries}{stringify_query(query)}"

    def entity_kind_set(self, kind: str) -> str:
        """Redis set holding the cache keys of queries on ``kind``."""
        return f"{self.prefix.queries}{kind}"

    def parse_key(self, cache_key: str) -> dict[str, str] | None:
        """Split a cache key into namespace prefix and body.

        Returns None if the key belongs to neither namespace.
        """
        for namespace in ("keys", "queries"):
            prefix = getattr(self.prefix, namespace)
            if cache_key.startswith(prefix):
                return {"namespace": namespace, "body": cache_key[len(prefix) :]}
        return None
