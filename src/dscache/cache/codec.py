"""Payload codec for cached values.

Entity records carry their originating ``Key`` as an attribute, which no
serialiser picks up. Before a value is written to a store it is marshalled:
every ``Entity`` becomes an explicit ``KeyedRecord(payload, origin_key)``.
After a read the value is unmarshalled back into ``Entity`` instances.

Stores that need bytes (redis) additionally run the marshalled value
through ``dumps``/``loads``, an orjson encoding that tags the few types
JSON cannot represent (records, keys, tuples, query responses).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import orjson

from dscache.datastore import Entity, Key, QueryResponse

_RECORD = "__record__"
_KEY = "__key__"
_TUPLE = "__tuple__"
_RESPONSE = "__query_response__"


@dataclass(frozen=True)
class KeyedRecord:
    """Storage form of an entity: plain payload plus its key identity."""

    payload: dict[str, Any]
    origin_key: Key | None = None


def marshal(value: Any) -> Any:
    """Replace every Entity in ``value`` with a KeyedRecord."""
    if isinstance(value, Entity):
        return KeyedRecord({k: marshal(v) for k, v in value.items()}, value.key)
    if isinstance(value, QueryResponse):
        return QueryResponse(marshal(value.entities), marshal(value.info))
    if isinstance(value, list):
        return [marshal(item) for item in value]
    if isinstance(value, tuple):
        return tuple(marshal(item) for item in value)
    if isinstance(value, dict):
        return {k: marshal(v) for k, v in value.items()}
    return value


def unmarshal(value: Any) -> Any:
    """Turn KeyedRecords back into Entity instances."""
    if isinstance(value, KeyedRecord):
        return Entity({k: unmarshal(v) for k, v in value.payload.items()}, key=value.origin_key)
    if isinstance(value, QueryResponse):
        return QueryResponse(unmarshal(value.entities), unmarshal(value.info))
    if isinstance(value, list):
        return [unmarshal(item) for item in value]
    if isinstance(value, tuple):
        return tuple(unmarshal(item) for item in value)
    if isinstance(value, dict) and not isinstance(value, Entity):
        return {k: unmarshal(v) for k, v in value.items()}
    return value


def attach_key(value: Any, key: Key) -> Any:
    """Return ``value`` as an Entity carrying ``key``.

    Records cached under a point key keep their stored identity; plain
    dicts get the key they were looked up with.
    """
    value = unmarshal(value)
    if isinstance(value, Entity):
        return value if value.key is not None else Entity(value, key=key)
    if isinstance(value, dict):
        return Entity(value, key=key)
    return value


def to_wire(value: Any) -> Any:
    """Convert a marshalled value to JSON-compatible data."""
    if isinstance(value, Entity):
        value = marshal(value)
    if isinstance(value, KeyedRecord):
        return {
            _RECORD: {
                "payload": to_wire(value.payload),
                "key": value.origin_key.to_dict() if value.origin_key else None,
            }
        }
    if isinstance(value, Key):
        return {_KEY: value.to_dict()}
    if isinstance(value, QueryResponse):
        return {_RESPONSE: [to_wire(value.entities), to_wire(value.info)]}
    if isinstance(value, tuple):
        return {_TUPLE: [to_wire(item) for item in value]}
    if isinstance(value, list):
        return [to_wire(item) for item in value]
    if isinstance(value, dict):
        return {str(k): to_wire(v) for k, v in value.items()}
    return value


def from_wire(value: Any) -> Any:
    """Inverse of ``to_wire``."""
    if isinstance(value, list):
        return [from_wire(item) for item in value]
    if not isinstance(value, dict):
        return value
    if len(value) == 1:
        tag, inner = next(iter(value.items()))
        if tag == _RECORD:
            key = inner.get("key")
            return KeyedRecord(
                from_wire(inner["payload"]),
                Key.from_dict(key) if key else None,
            )
        if tag == _KEY:
            return Key.from_dict(inner)
        if tag == _RESPONSE:
            entities, info = inner
            return QueryResponse(from_wire(entities), from_wire(info))
        if tag == _TUPLE:
            return tuple(from_wire(item) for item in inner)
    return {k: from_wire(v) for k, v in value.items()}


def dumps(value: Any) -> bytes:
    """Serialize a cache value to bytes."""
    return orjson.dumps(to_wire(marshal(value)))


def loads(data: bytes | str) -> Any:
    """Deserialize bytes produced by ``dumps``. Entities stay marshalled."""
    return from_wire(orjson.loads(data))


def canonical(value: Any) -> str:
    """Deterministic text form of a value, used for cache key derivation."""
    return orjson.dumps(to_wire(value), option=orjson.OPT_SORT_KEYS).decode("utf-8")
