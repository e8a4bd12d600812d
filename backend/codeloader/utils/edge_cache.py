"""
Edge cache for delivery bundles.

Entries are ephemeral and always rebuildable from File + Page/Site rows,
so every backend is allowed to lose data. Only explicit deletes matter
for correctness.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Dict, Optional, Tuple

import redis
from flask import current_app

logger = logging.getLogger(__name__)

def make_bundle_key(target_kind: str, target_id, location: str) -> str:
    """
    Build the cache key for a delivery bundle.

    Kind is part of the key: page and site ids live in separate
    namespaces and may collide.
    """
    return f"bundle:{target_kind}:{target_id}:{location}"


class EdgeCache:
    """Minimal get/put/delete interface shared by all backends."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def put(self, key: str, value: str, ttl: int) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError


class MemoryEdgeCache(EdgeCache):
    """Process-local cache with per-entry expiry."""

    def __init__(self) -> None:
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        now = time.monotonic()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= now:
                del self._entries[key]
                return None
            return value

    def put(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            self._entries[key] = (value, time.monotonic() + ttl)

    def delete(self, key: str) -> bool:
        now = time.monotonic()
        with self._lock:
            entry = self._entries.pop(key, None)
        # An expired entry counts as already gone
        return entry is not None and entry[1] > now

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisEdgeCache(EdgeCache):
    """Redis-backed cache, shared between all app workers."""

    def __init__(self, client) -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisEdgeCache":
        return cls(redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Optional[str]:
        try:
            return self.client.get(key)
        except redis.RedisError as exc:
            # Treated as a miss; the bundle is rebuilt from the database
            logger.warning(f"Edge cache read failed for {key}: {exc}")
            return None

    def put(self, key: str, value: str, ttl: int) -> None:
        try:
            self.client.setex(key, ttl, value)
        except redis.RedisError as exc:
            logger.warning(f"Edge cache write failed for {key}: {exc}")

    # Delete errors propagate: a purge must not report success it didn't get
    def delete(self, key: str) -> bool:
        return bool(self.client.delete(key))


class EdgeCacheExtension:
    """
    Flask extension holding the configured cache backend.

    The backend lives in app.extensions, so several apps (tests) can
    share this object without sharing entries.

    Usage:
        edge_cache.init_app(app)
        edge_cache.get(key)
    """

    def __init__(self, app=None) -> None:
        if app is not None:
            self.init_app(app)

    def init_app(self, app, backend: Optional[EdgeCache] = None) -> None:
        if backend is None:
            kind = app.config.get("CACHE_BACKEND", "memory")
            if kind == "redis":
                backend = RedisEdgeCache.from_url(app.config["REDIS_URL"])
            elif kind == "memory":
                backend = MemoryEdgeCache()
            else:
                raise ValueError(f"Unknown CACHE_BACKEND: {kind}")

        app.extensions["edge_cache"] = backend
        logger.info(f"Edge cache initialized ({type(backend).__name__})")

    @property
    def backend(self) -> EdgeCache:
        backend = current_app.extensions.get("edge_cache")
        if backend is None:
            raise RuntimeError("Edge cache not initialized. Call init_app() first.")
        return backend

    def get(self, key: str) -> Optional[str]:
        return self.backend.get(key)

    def put(self, key: str, value: str, ttl: int) -> None:
        self.backend.put(key, value, ttl)

    def delete(self, key: str) -> bool:
        return self.backend.delete(key)
