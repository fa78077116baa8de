# ledger/services/locking.py

"""
======================================================
PATH: ledger/services/locking.py
======================================================
PER-CHANNEL MUTUAL EXCLUSION

Every post to a channel is serialized against other posts to the
same channel. Posts to different channels never wait on each other.

Two layers, both bounded by LEDGER_LOCK_TIMEOUT_SECONDS:
1) an in-process lock per channel id (threads in one worker)
2) SELECT ... FOR UPDATE on the channel row (workers / processes)

Failure to acquire either layer raises ConcurrentModification.
Nothing here retries.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager

from django.conf import settings
from django.db import DatabaseError, connection, transaction

from ledger.models import Channel
from ledger.services.exceptions import ConcurrentModification, UnknownChannel

logger = logging.getLogger(__name__)

_registry_guard = threading.Lock()
_channel_locks: dict[int, threading.RLock] = {}


def lock_timeout_seconds() -> float:
    return float(getattr(settings, "LEDGER_LOCK_TIMEOUT_SECONDS", 5.0))


def _process_lock(channel_id: int) -> threading.RLock:
    with _registry_guard:
        lock = _channel_locks.get(channel_id)
        if lock is None:
            lock = threading.RLock()
            _channel_locks[channel_id] = lock
        return lock


def _set_db_lock_timeout(timeout: float) -> None:
    if connection.vendor != "postgresql":
        return
    with connection.cursor() as cursor:
        cursor.execute("SET LOCAL lock_timeout = %s", [f"{int(timeout * 1000)}ms"])


@contextmanager
def channel_lock(channel_id: int, *, timeout: float | None = None):
    """
    Hold the channel's lock for the duration of the block.

    Yields the freshly locked Channel row inside an atomic block.
    """
    wait = lock_timeout_seconds() if timeout is None else float(timeout)
    lock = _process_lock(channel_id)

    if not lock.acquire(timeout=wait):
        logger.warning(
            "Channel lock wait exceeded",
            extra={"channel_id": channel_id, "timeout": wait},
        )
        raise ConcurrentModification(
            f"Channel {channel_id} is busy; could not acquire lock within {wait}s"
        )

    try:
        with transaction.atomic():
            try:
                _set_db_lock_timeout(wait)
                locked = Channel.objects.select_for_update().get(pk=channel_id)
            except Channel.DoesNotExist as exc:
                raise UnknownChannel(f"Unknown channel: {channel_id!r}") from exc
            except DatabaseError as exc:
                raise ConcurrentModification(
                    f"Channel {channel_id} row lock not acquired: {exc}"
                ) from exc

            yield locked
    finally:
        lock.release()
