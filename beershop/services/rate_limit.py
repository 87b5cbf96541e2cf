"""Fixed-window request counters keyed by scope and client identity."""

import logging
import math
import time
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Request
from limits import RateLimitItem, parse
from limits.storage import MemoryStorage, Storage, storage_from_string
from limits.strategies import FixedWindowRateLimiter
from slowapi.util import get_remote_address

from beershop.core.errors import TooManyRequests

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitRule:
    """A named counter (scope) and its limit, e.g. RateLimitRule("auth", "5/minute")."""

    scope: str
    limit: str


@lru_cache(maxsize=64)
def _parse_limit(limit: str) -> RateLimitItem:
    return parse(limit)


class RateLimiter:
    """
    Wraps a limits storage. Increment-and-compare is atomic in the storage
    (lock-protected in memory, INCR in Redis), so concurrent requests from one
    client cannot both squeeze under the limit.
    """

    def __init__(self, storage: Storage | None = None) -> None:
        self._storage = storage if storage is not None else MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)

    @classmethod
    def from_uri(cls, uri: str) -> "RateLimiter":
        return cls(storage_from_string(uri))

    def hit(self, rule: RateLimitRule, client_id: str) -> None:
        """Count one request; raise TooManyRequests once the window is exhausted."""
        item = _parse_limit(rule.limit)
        if self._strategy.hit(item, rule.scope, client_id):
            return
        reset_time, _ = self._strategy.get_window_stats(item, rule.scope, client_id)
        retry_after = max(1, math.ceil(reset_time - time.time()))
        logger.warning(
            "Rate limit exceeded",
            extra={"scope": rule.scope, "client": client_id, "limit": rule.limit},
        )
        raise TooManyRequests(retry_after=retry_after)

    def reset(self) -> None:
        self._storage.reset()


def client_identity(request: Request, trust_proxy_headers: bool = False) -> str:
    """Client key for counters: the socket peer, or the first X-Forwarded-For hop behind a proxy."""
    if trust_proxy_headers:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()
    return get_remote_address(request)
