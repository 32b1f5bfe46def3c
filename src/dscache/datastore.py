"""Datastore collaborator types.

The caching layer does not talk to a database driver directly. It needs
native key identities, query descriptions and a driver object offering a
batch ``get`` and ``run_query``; this module defines those shapes.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Any, NamedTuple, Protocol

from dscache.errors import FetchError


@dataclass(frozen=True)
class Key:
    """Native key identity of a stored entity.

    ``path`` alternates kind and identifier, ancestors first:
    ``Key(("Company", 1, "User", "alice"))``. Integer identifiers are ids,
    string identifiers are names.
    """

    path: tuple[Any, ...]
    namespace: str | None = None

    def __post_init__(self) -> None:
        if not self.path or len(self.path) % 2:
            raise ValueError(f"Key path must be kind/identifier pairs: {self.path!r}")
        object.__setattr__(self, "path", tuple(self.path))

    @property
    def kind(self) -> str:
        return str(self.path[-2])

    @property
    def id(self) -> int | None:
        value = self.path[-1]
        return value if isinstance(value, int) else None

    @property
    def name(self) -> str | None:
        value = self.path[-1]
        return value if isinstance(value, str) else None

    @property
    def parent(self) -> Key | None:
        if len(self.path) <= 2:
            return None
        return Key(self.path[:-2], self.namespace)

    def to_dict(self) -> dict[str, Any]:
        return {"namespace": self.namespace, "path": list(self.path)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Key:
        return cls(tuple(data["path"]), data.get("namespace"))


class Entity(dict[str, Any]):
    """Entity record with its originating key attached.

    The key is an attribute, not an item: it does not show up when the
    entity is iterated, serialised or compared.
    """

    __slots__ = ("key",)

    def __init__(self, data: Any = (), key: Key | None = None) -> None:
        super().__init__(data)
        self.key = key

    def __repr__(self) -> str:
        return f"Entity({dict.__repr__(self)}, key={self.key!r})"


@dataclass(frozen=True)
class Filter:
    name: str
    op: str
    value: Any


@dataclass(frozen=True)
class Order:
    name: str
    descending: bool = False


class QueryResponse(NamedTuple):
    """Result of running a query: the entities plus pagination info."""

    entities: list[Any]
    info: dict[str, Any]


class Datastore(Protocol):
    """Driver surface consumed by the cache layer."""

    async def get(self, keys: Key | Sequence[Key]) -> Any: ...

    async def run_query(self, query: Query) -> QueryResponse: ...


@dataclass(frozen=True)
class Query:
    """Immutable description of a filtered listing request."""

    kinds: tuple[str, ...]
    namespace: str | None = None
    filters: tuple[Filter, ...] = ()
    orders: tuple[Order, ...] = ()
    select: tuple[str, ...] = ()
    group_by: tuple[str, ...] = ()
    start: str | None = None
    end: str | None = None
    limit: int = -1
    offset: int = -1
    datastore: Datastore | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        kinds = (self.kinds,) if isinstance(self.kinds, str) else tuple(self.kinds)
        if not kinds:
            raise ValueError("Query needs at least one kind")
        object.__setattr__(self, "kinds", kinds)
        for name in ("filters", "orders", "select", "group_by"):
            object.__setattr__(self, name, tuple(getattr(self, name)))

    def filter(self, name: str, op: str, value: Any) -> Query:
        return replace(self, filters=(*self.filters, Filter(name, op, value)))

    def order(self, name: str, descending: bool = False) -> Query:
        return replace(self, orders=(*self.orders, Order(name, descending)))

    def with_limit(self, limit: int) -> Query:
        return replace(self, limit=limit)

    def with_offset(self, offset: int) -> Query:
        return replace(self, offset=offset)

    def with_start(self, cursor: str | None) -> Query:
        return replace(self, start=cursor)

    async def run(self) -> QueryResponse:
        """Execute the query against its datastore."""
        if self.datastore is None:
            raise FetchError(f"Query on {', '.join(self.kinds)} has no datastore to run against")
        return await self.datastore.run_query(self)
