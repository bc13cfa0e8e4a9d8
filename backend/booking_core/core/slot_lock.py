"""
Per-slot Redis locks held for the duration of a booking check-and-commit.

The storage-level unique claim is what guarantees exclusion; these locks only
shorten the window in which two requests race for the same slot. Redis being
unreachable therefore fails open with a warning.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Iterable, Iterator, List, Optional, Tuple

from redis import Redis

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings
from .exceptions import SlotLockedException

logger = logging.getLogger(__name__)

SlotKey = Tuple[str, str, str]

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()


def _lock_key(slot: SlotKey) -> str:
    session_date, slot_id, provider_id = slot
    return f"slot:{provider_id}:{session_date}:{slot_id}:mutex"


def _namespaced_key(key: str) -> str:
    return f"{settings.slot_lock_namespace}:lock:{key}"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            client.ping()
        except Exception as exc:
            logger.warning("slot_lock_sync_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def acquire_slot_lock(slot: SlotKey, ttl_s: int, client: Optional[Redis] = None) -> bool:
    client = client if client is not None else _get_sync_redis()
    if client is None:
        prometheus_metrics.record_slot_lock("acquire", "redis_unavailable")
        logger.warning("slot_lock_redis_unavailable", extra={"slot": _lock_key(slot)})
        return True
    try:
        acquired = bool(
            client.set(_namespaced_key(_lock_key(slot)), str(time.time()), nx=True, ex=ttl_s)
        )
    except Exception as exc:
        prometheus_metrics.record_slot_lock("acquire", "error")
        logger.warning(
            "slot_lock_acquire_failed",
            extra={
                "slot": _lock_key(slot),
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )
        return True
    prometheus_metrics.record_slot_lock("acquire", "success" if acquired else "blocked")
    return acquired


def release_slot_lock(slot: SlotKey, client: Optional[Redis] = None) -> None:
    client = client if client is not None else _get_sync_redis()
    if client is None:
        prometheus_metrics.record_slot_lock("release", "redis_unavailable")
        return
    try:
        deleted = client.delete(_namespaced_key(_lock_key(slot)))
        prometheus_metrics.record_slot_lock("release", "success" if deleted else "not_found")
    except Exception as exc:
        prometheus_metrics.record_slot_lock("release", "error")
        logger.warning(
            "slot_lock_release_failed",
            extra={
                "slot": _lock_key(slot),
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )


@contextmanager
def slot_locks(
    slots: Iterable[SlotKey],
    *,
    ttl_s: Optional[int] = None,
    enabled: Optional[bool] = None,
    client: Optional[Redis] = None,
) -> Iterator[List[SlotKey]]:
    """
    Acquire one lock per slot in sorted order, releasing everything on exit.

    Raises SlotLockedException (after releasing partial acquisitions) when any
    slot is already locked by another request.
    """
    enabled = settings.slot_lock_enabled if enabled is None else enabled
    if not enabled:
        yield []
        return

    ttl = ttl_s or settings.slot_lock_ttl_seconds
    held: List[SlotKey] = []
    try:
        for slot in sorted(set(slots)):
            if not acquire_slot_lock(slot, ttl, client=client):
                raise SlotLockedException(_lock_key(slot))
            held.append(slot)
        yield held
    finally:
        for slot in reversed(held):
            release_slot_lock(slot, client=client)
