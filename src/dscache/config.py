from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreTTL(BaseModel):
    """TTL table for one backing store (seconds)."""

    keys: int = 600
    queries: int = 5


class TTLSettings(BaseModel):
    # -1 disables caching for the operation kind, 0 caches without expiry
    keys: int = 60 * 10
    queries: int = 5

    # Used only when more than one store is configured
    stores: dict[str, StoreTTL] = Field(
        default_factory=lambda: {
            "memory": StoreTTL(keys=60 * 10, queries=5),
            "redis": StoreTTL(keys=60 * 60 * 24, queries=0),
        }
    )

    def for_kind(self, kind: str) -> int:
        return int(getattr(self, kind))

    def store_value(self, store_name: str, kind: str) -> int | None:
        store = self.stores.get(store_name)
        if store is None:
            return None
        return int(getattr(store, kind))


class CachePrefix(BaseModel):
    keys: str = "gck:"
    queries: str = "gcq:"


class CacheSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DSCACHE_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_name: str = "dscache"

    # Ordered list of backing stores, reads go front to back
    stores: list[str] = Field(default_factory=lambda: ["memory"])

    # Redis (distributed store)
    redis_url: str = Field(default="redis://localhost:6379/0")

    # Memory store
    memory_max_items: int = 100

    # Global switch, a call can still opt in with CacheOptions(cache=True)
    global_cache: bool = True

    ttl: TTLSettings = Field(default_factory=TTLSettings)
    cache_prefix: CachePrefix = Field(default_factory=CachePrefix)

    # Observability
    enable_metrics: bool = True
    log_level: str = "INFO"
    log_json: bool = True

    @property
    def has_redis(self) -> bool:
        return "redis" in self.stores

    @property
    def multi_store(self) -> bool:
        return len(self.stores) > 1


settings = CacheSettings()
