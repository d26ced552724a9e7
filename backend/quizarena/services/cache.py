from __future__ import annotations
import json
import time
from typing import Any, Awaitable, Callable, NamedTuple, Protocol, TypeVar
import structlog
from pydantic import BaseModel
from redis.asyncio import Redis
from redis.exceptions import RedisError
from quizarena.config import settings

log = structlog.get_logger()

M = TypeVar("M", bound=BaseModel)


class CacheKey(NamedTuple):
    """
    Structured cache key.
    namespace: unit of invalidation, e.g. ("leaderboard", contest_id)
    params:    what distinguishes entries inside it, e.g. (page, limit)
    """
    namespace: tuple
    params: tuple = ()


class Cache(Protocol):
    async def get(self, key: CacheKey) -> Any | None: ...
    async def version(self, namespace: tuple) -> Any: ...
    async def set(self, key: CacheKey, value: Any, ttl: int, *, version: Any = None) -> None: ...
    async def invalidate(self, namespace: tuple) -> None: ...
    async def clear(self) -> None: ...
    async def close(self) -> None: ...


class MemoryCache:
    """
    Process-local store with per-key TTL and per-namespace bulk invalidation.
    Expired entries are swept from every namespace at most once per
    `check_period` seconds, on write. Each namespace carries a generation
    that `invalidate` bumps; a write tagged with an older generation is dropped.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, check_period: float = 60):
        self._clock = clock
        self._check_period = check_period
        self._next_sweep = clock() + check_period
        self._data: dict[tuple, dict[tuple, tuple[float, Any]]] = {}
        self._gen: dict[tuple, int] = {}

    async def get(self, key: CacheKey) -> Any | None:
        bucket = self._data.get(key.namespace)
        if not bucket:
            return None
        entry = bucket.get(key.params)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            bucket.pop(key.params, None)
            if not bucket:
                self._data.pop(key.namespace, None)
            return None
        return value

    async def version(self, namespace: tuple) -> int:
        return self._gen.get(namespace, 0)

    async def set(self, key: CacheKey, value: Any, ttl: int, *, version: Any = None) -> None:
        now = self._clock()
        if now >= self._next_sweep:
            self._sweep(now)
        if version is not None and version != self._gen.get(key.namespace, 0):
            return
        self._data.setdefault(key.namespace, {})[key.params] = (now + ttl, value)

    def _sweep(self, now: float) -> None:
        for namespace in list(self._data):
            bucket = self._data[namespace]
            for params in [p for p, (expires_at, _) in bucket.items() if now >= expires_at]:
                del bucket[params]
            if not bucket:
                del self._data[namespace]
        self._next_sweep = now + self._check_period

    async def invalidate(self, namespace: tuple) -> None:
        self._data.pop(namespace, None)
        self._gen[namespace] = self._gen.get(namespace, 0) + 1

    async def clear(self) -> None:
        self._data.clear()
        self._gen.clear()

    async def close(self) -> None:
        await self.clear()

    def __len__(self) -> int:
        return sum(len(b) for b in self._data.values())


class NullCache:
    """Caching disabled: every read is a miss."""

    async def get(self, key: CacheKey) -> Any | None:
        return None

    async def version(self, namespace: tuple) -> None:
        return None

    async def set(self, key: CacheKey, value: Any, ttl: int, *, version: Any = None) -> None:
        return None

    async def invalidate(self, namespace: tuple) -> None:
        return None

    async def clear(self) -> None:
        return None

    async def close(self) -> None:
        return None


class RedisCache:
    """
    Shared cache on Redis. Each namespace has a version counter that is part of
    every entry key; invalidating a namespace bumps the counter so old entries
    become unreachable and age out through their TTL. A write made with the
    version read before computing lands under that version, so it is never
    visible after an invalidation that happened meanwhile.
    Redis errors degrade to cache misses.
    """

    def __init__(self, client: Redis, prefix: str = "quizarena"):
        self._r = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str) -> "RedisCache":
        return cls(Redis.from_url(url, decode_responses=True))

    def _ns(self, namespace: tuple) -> str:
        return ":".join(str(p) for p in namespace)

    def _version_key(self, namespace: tuple) -> str:
        return f"{self._prefix}:ver:{self._ns(namespace)}"

    def _entry_key(self, key: CacheKey, version: str) -> str:
        params = ":".join(str(p) for p in key.params)
        return f"{self._prefix}:val:{self._ns(key.namespace)}:v{version}:{params}"

    async def version(self, namespace: tuple) -> str | None:
        try:
            return await self._r.get(self._version_key(namespace)) or "0"
        except RedisError as e:
            log.warning("cache_get_failed", error=str(e))
            return None

    async def get(self, key: CacheKey) -> Any | None:
        try:
            version = await self._r.get(self._version_key(key.namespace)) or "0"
            raw = await self._r.get(self._entry_key(key, version))
        except RedisError as e:
            log.warning("cache_get_failed", error=str(e))
            return None
        return json.loads(raw) if raw is not None else None

    async def set(self, key: CacheKey, value: Any, ttl: int, *, version: Any = None) -> None:
        try:
            if version is None:
                version = await self._r.get(self._version_key(key.namespace)) or "0"
            await self._r.set(self._entry_key(key, version), json.dumps(value), ex=ttl)
        except RedisError as e:
            log.warning("cache_set_failed", error=str(e))

    async def invalidate(self, namespace: tuple) -> None:
        try:
            await self._r.incr(self._version_key(namespace))
        except RedisError as e:
            log.warning("cache_invalidate_failed", namespace=self._ns(namespace), error=str(e))

    async def clear(self) -> None:
        async for k in self._r.scan_iter(match=f"{self._prefix}:*"):
            await self._r.delete(k)

    async def close(self) -> None:
        await self._r.aclose()


def build_cache(backend: str | None = None) -> Cache:
    backend = backend or settings.cache_backend
    if backend == "redis":
        return RedisCache.from_url(settings.redis_url)
    if backend == "none":
        return NullCache()
    return MemoryCache()


# Lazy single instance, swappable for tests
_cache: Cache | None = None


def get_cache() -> Cache:
    global _cache
    if _cache is None:
        _cache = build_cache()
    return _cache


def set_cache(cache: Cache | None) -> None:
    global _cache
    _cache = cache


async def close_cache() -> None:
    global _cache
    if _cache is not None:
        await _cache.close()
        _cache = None


async def cached(key: CacheKey, ttl: int, model: type[M], compute: Callable[[], Awaitable[M]]) -> M:
    """
    Read-through helper. Values are stored as JSON-compatible dicts so every
    backend hands back the same shape; a hit is re-validated into `model`.
    The namespace version is taken before computing, so a result computed
    across an invalidation is not stored as current.
    """
    cache = get_cache()
    hit = await cache.get(key)
    if hit is not None:
        return model.model_validate(hit)
    version = await cache.version(key.namespace)
    result = await compute()
    if version is not None:
        await cache.set(key, result.model_dump(mode="json"), ttl, version=version)
    return result


# ---------- namespaces ----------

def leaderboard_namespace(contest_id) -> tuple:
    return ("leaderboard", str(contest_id))


def history_namespace(user_id) -> tuple:
    return ("history", str(user_id))


async def invalidate_leaderboard(contest_id) -> None:
    await get_cache().invalidate(leaderboard_namespace(contest_id))
    log.info("cache_invalidated", namespace="leaderboard", contest_id=str(contest_id))


async def invalidate_user_history(user_id) -> None:
    await get_cache().invalidate(history_namespace(user_id))
    log.info("cache_invalidated", namespace="history", user_id=str(user_id))
