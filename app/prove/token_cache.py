# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.

"""Single-entry access token cache for the Prove API.

Holds at most one bearer token together with the absolute time after
which it must no longer be handed out.  That time is the provider's
reported lifetime minus a safety buffer (300 s by default), so a caller
never receives a token that is about to expire mid-request.

Concurrency
-----------
``get_token()`` holds an ``asyncio.Lock`` across the whole
check-fetch-store sequence.  When several requests miss at once, the
first one fetches and the rest wait on the lock, then find the fresh
entry: exactly one remote fetch per miss.

Failure semantics
-----------------
If the fetch raises, the exception propagates unchanged and the cache is
left exactly as it was.  A failed fetch never stores anything.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from app.prove.exceptions import AuthenticationError
from app.prove.models import AccessToken

logger = logging.getLogger("prove.token_cache")

__all__ = ["CachedToken", "TokenCache"]

TokenFetcher = Callable[[], Awaitable[AccessToken]]


@dataclass(frozen=True)
class CachedToken:
    """A bearer token and the absolute time it stops being served.

    Attributes
    ----------
    value : str
        Opaque bearer token.
    expires_at : float
        Clock timestamp (``fetched_at + expires_in - buffer``).
    """

    value: str
    expires_at: float


class TokenCache:
    """In-memory, process-lifetime cache for one Prove access token.

    Parameters
    ----------
    fetch : callable
        Coroutine function returning a fresh :class:`AccessToken`.
    buffer_seconds : int
        Safety margin subtracted from the reported lifetime.
    clock : callable
        Time source in seconds; ``time.time`` unless a test injects one.
    """

    def __init__(
        self,
        fetch: TokenFetcher,
        buffer_seconds: int = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._fetch = fetch
        self._buffer_seconds = buffer_seconds
        self._clock = clock
        self._entry: Optional[CachedToken] = None
        self._lock = asyncio.Lock()
        self._fetches = 0
        self._hits = 0

    async def get_token(self) -> str:
        """Return a cached token, fetching a new one if absent or expiring."""
        async with self._lock:
            entry = self._entry
            if entry is not None and self._clock() < entry.expires_at:
                self._hits += 1
                return entry.value

            token = await self._fetch()
            self._fetches += 1

            lifetime = token.expires_in - self._buffer_seconds
            if lifetime <= 0:
                raise AuthenticationError.short_lifetime(
                    token.expires_in, self._buffer_seconds,
                )

            self._entry = CachedToken(
                value=token.access_token,
                expires_at=self._clock() + lifetime,
            )
            logger.debug("Access token cached for %d seconds", lifetime)
            return token.access_token

    def invalidate(self) -> None:
        """Drop the cached token so the next ``get_token()`` refetches."""
        if self._entry is not None:
            logger.info("Cached access token invalidated")
        self._entry = None

    @property
    def cached(self) -> Optional[CachedToken]:
        return self._entry

    def stats(self) -> dict:
        entry = self._entry
        remaining = None
        if entry is not None:
            remaining = max(0, int(entry.expires_at - self._clock()))
        return {
            "cached": entry is not None,
            "expires_in_seconds": remaining,
            "fetches": self._fetches,
            "hits": self._hits,
        }
