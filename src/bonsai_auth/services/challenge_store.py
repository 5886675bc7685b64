"""Storage for one-time passcodes and OTP request counters.

Two interchangeable backends implement the same contract:

- `RedisChallengeStore` talks to a shared Redis instance and relies on its
  native key expiry.
- `InMemoryChallengeStore` keeps everything in per-instance dictionaries and
  checks expiry lazily on access. It is only used when no shared backend is
  configured.

OTP values and request counters live in separate key namespaces so that the
two never collide or share a TTL.
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Callable, Iterator
from threading import Lock
from typing import Final, Protocol

import redis.asyncio as redis_asyncio
from redis.exceptions import RedisError

from bonsai_auth.core.settings import Settings
from bonsai_auth.services.errors import StoreUnavailable

logger = logging.getLogger(__name__)

OTP_NAMESPACE: Final[str] = "otp"
REQUESTS_NAMESPACE: Final[str] = "otp_requests"
DEFAULT_SWEEP_INTERVAL_SECONDS: Final[float] = 60.0

# INCR and the window expiry run as one server-side step. The PTTL branch
# repairs a counter that was somehow left without an expiry.
_INCREMENT_SCRIPT: Final[str] = """
local count = redis.call('INCR', KEYS[1])
if count == 1 or redis.call('PTTL', KEYS[1]) == -1 then
    redis.call('PEXPIRE', KEYS[1], ARGV[1])
end
return count
"""


def otp_key(key: str) -> str:
    """Return the storage key holding the OTP value for `key`."""
    return f"{OTP_NAMESPACE}:{key}"


def requests_key(key: str) -> str:
    """Return the storage key holding the OTP request counter for `key`."""
    return f"{REQUESTS_NAMESPACE}:{key}"


class ChallengeStore(Protocol):
    """Contract shared by every challenge backend."""

    async def set_otp(self, key: str, code: str, ttl_seconds: float) -> None:
        """Store `code`, replacing any previous value, expiring after `ttl_seconds`."""
        ...

    async def get_otp(self, key: str) -> str | None:
        """Return the live code for `key`, or None if absent or expired."""
        ...

    async def delete_otp(self, key: str) -> None:
        """Remove the code for `key`. Missing keys are ignored."""
        ...

    async def increment_request_count(self, key: str, window_seconds: float) -> int:
        """Atomically bump the request counter for `key` and return the new value.

        The first increment of a fresh or expired window starts the counter at
        1 and fixes its expiry at now + `window_seconds`.
        """
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...


class InMemoryChallengeStore:
    """Process-local challenge store guarded by a per-instance lock.

    Expired entries are dropped lazily when their key is read, and every
    `sweep_interval_seconds` a write also sweeps the whole store so that
    identities which never return do not accumulate.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        *,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._clock = clock
        self._codes: dict[str, tuple[str, float]] = {}
        self._counters: dict[str, tuple[int, float]] = {}
        self._lock = Lock()
        self._sweep_interval = sweep_interval_seconds
        self._next_sweep = clock() + sweep_interval_seconds

    async def set_otp(self, key: str, code: str, ttl_seconds: float) -> None:
        now = self._clock()
        with self._lock:
            self._maybe_sweep(now)
            self._codes[otp_key(key)] = (code, now + ttl_seconds)

    async def get_otp(self, key: str) -> str | None:
        now = self._clock()
        storage_key = otp_key(key)
        with self._lock:
            entry = self._codes.get(storage_key)
            if entry is None:
                return None
            code, expires_at = entry
            if expires_at <= now:
                self._codes.pop(storage_key, None)
                return None
            return code

    async def delete_otp(self, key: str) -> None:
        with self._lock:
            self._codes.pop(otp_key(key), None)

    async def increment_request_count(self, key: str, window_seconds: float) -> int:
        now = self._clock()
        storage_key = requests_key(key)
        with self._lock:
            self._maybe_sweep(now)
            entry = self._counters.get(storage_key)
            if entry is None or entry[1] <= now:
                count, expires_at = 1, now + window_seconds
            else:
                count, expires_at = entry[0] + 1, entry[1]
            self._counters[storage_key] = (count, expires_at)
            return count

    def purge_expired(self) -> int:
        """Drop every expired code and counter; return how many were removed."""
        now = self._clock()
        with self._lock:
            return self._purge_locked(now)

    def _maybe_sweep(self, now: float) -> None:
        # Caller holds self._lock.
        if now < self._next_sweep:
            return
        self._next_sweep = now + self._sweep_interval
        removed = self._purge_locked(now)
        if removed:
            logger.debug("Swept %d expired challenge entries", removed)

    def _purge_locked(self, now: float) -> int:
        stale_codes = [k for k, (_, exp) in self._codes.items() if exp <= now]
        stale_counters = [k for k, (_, exp) in self._counters.items() if exp <= now]
        for k in stale_codes:
            del self._codes[k]
        for k in stale_counters:
            del self._counters[k]
        return len(stale_codes) + len(stale_counters)

    async def close(self) -> None:
        with self._lock:
            self._codes.clear()
            self._counters.clear()


@contextlib.contextmanager
def _backend_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except (RedisError, OSError) as exc:
        logger.error("Challenge store %s failed: %s", operation, exc)
        raise StoreUnavailable(f"challenge store {operation} failed") from exc


class RedisChallengeStore:
    """Challenge store backed by a shared Redis instance."""

    def __init__(self, client: redis_asyncio.Redis) -> None:
        self._redis = client

    @classmethod
    def from_url(cls, url: str, *, timeout_seconds: float = 2.0) -> RedisChallengeStore:
        """Create a store connected to `url` with bounded network timeouts.

        Use a ``rediss://`` URL for TLS endpoints such as Upstash.
        """
        client = redis_asyncio.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout_seconds,
            socket_connect_timeout=timeout_seconds,
        )
        return cls(client)

    async def set_otp(self, key: str, code: str, ttl_seconds: float) -> None:
        with _backend_errors("set_otp"):
            await self._redis.set(otp_key(key), code, px=_to_millis(ttl_seconds))

    async def get_otp(self, key: str) -> str | None:
        with _backend_errors("get_otp"):
            value = await self._redis.get(otp_key(key))
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    async def delete_otp(self, key: str) -> None:
        with _backend_errors("delete_otp"):
            await self._redis.delete(otp_key(key))

    async def increment_request_count(self, key: str, window_seconds: float) -> int:
        with _backend_errors("increment_request_count"):
            count = await self._redis.eval(
                _INCREMENT_SCRIPT,
                1,
                requests_key(key),
                _to_millis(window_seconds),
            )
        return int(count)

    async def close(self) -> None:
        with _backend_errors("close"):
            await self._redis.aclose()


def _to_millis(seconds: float) -> int:
    return max(1, int(seconds * 1000))


def build_challenge_store(config: Settings) -> ChallengeStore:
    """Select the challenge backend once, based on configuration presence."""
    if config.shared_backend_configured:
        logger.info("Using Redis challenge store")
        return RedisChallengeStore.from_url(
            config.redis_url or "",
            timeout_seconds=config.redis_timeout_seconds,
        )
    logger.info("UPSTASH_REDIS_URL not set - using in-memory challenge store")
    return InMemoryChallengeStore()
