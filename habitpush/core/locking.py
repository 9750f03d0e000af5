"""
Named, time-bounded locks for single-flight batch jobs.

Two backends share the same contract (acquire -> Lease or None, release):
- RedisLockBackend: SET NX EX with a random token, compare-and-delete release.
  The TTL bounds how long a crashed holder can block other runs.
- FileLockBackend: fcntl.flock on a file in LOCK_DIR. The kernel drops the
  lock when the holding process exits, which bounds it the same way.
"""
import fcntl
import logging
import os
import secrets
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Optional

import redis.asyncio as redis

from config import settings
from habitpush.core.error_handling import LockContentionError

logger = logging.getLogger(__name__)


@dataclass
class Lease:
    name: str
    token: str
    expires_at: datetime
    handle: Any = field(default=None, repr=False)


class RedisLockBackend:
    """Redis lock backend for multi-host deployments"""

    KEY_PREFIX = "lock:"

    # Only delete the key if we still own it
    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    def __init__(self, client: Optional[redis.Redis] = None, url: Optional[str] = None):
        self._client = client
        self._url = url

    async def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(self._url, encoding="utf-8", decode_responses=True)
        return self._client

    async def acquire(self, name: str, ttl: int) -> Optional[Lease]:
        client = await self._get_client()
        token = secrets.token_hex(16)
        acquired = await client.set(f"{self.KEY_PREFIX}{name}", token, nx=True, ex=ttl)
        if not acquired:
            return None
        return Lease(
            name=name,
            token=token,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl),
        )

    async def release(self, lease: Lease) -> None:
        client = await self._get_client()
        released = await client.eval(self.RELEASE_SCRIPT, 1, f"{self.KEY_PREFIX}{lease.name}", lease.token)
        if not released:
            logger.warning(f"Lock '{lease.name}' expired before release")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()


class FileLockBackend:
    """flock-based backend for single-host deployments"""

    def __init__(self, lock_dir: Optional[str] = None):
        self.lock_dir = lock_dir or tempfile.gettempdir()

    def _path(self, name: str) -> str:
        safe_name = "".join(c if c.isalnum() or c in "-_." else "_" for c in name)
        return os.path.join(self.lock_dir, f"{safe_name}.lock")

    async def acquire(self, name: str, ttl: int) -> Optional[Lease]:
        os.makedirs(self.lock_dir, exist_ok=True)
        handle = open(self._path(name), "a+")
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            handle.close()
            return None

        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
        token = secrets.token_hex(16)
        handle.seek(0)
        handle.truncate()
        handle.write(f"{os.getpid()} {token} {expires_at.isoformat()}\n")
        handle.flush()
        return Lease(name=name, token=token, expires_at=expires_at, handle=handle)

    async def release(self, lease: Lease) -> None:
        handle = lease.handle
        if handle is None or handle.closed:
            return
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        finally:
            handle.close()

    async def close(self) -> None:
        return None


def get_lock_backend():
    """Pick the lock backend from settings"""
    if settings.REDIS_URL:
        return RedisLockBackend(url=settings.REDIS_URL)
    return FileLockBackend(settings.LOCK_DIR)


@asynccontextmanager
async def hold_lock(backend, name: str, ttl: int) -> AsyncIterator[Lease]:
    """
    Hold a named lock for the duration of the block.
    Raises LockContentionError when another holder owns it.
    """
    lease = await backend.acquire(name, ttl)
    if lease is None:
        raise LockContentionError(name)
    logger.debug(f"Acquired lock '{name}' until {lease.expires_at.isoformat()}")
    try:
        yield lease
    finally:
        await backend.release(lease)
