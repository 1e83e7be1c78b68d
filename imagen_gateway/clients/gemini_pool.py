"""
Gemini pool client: key rotation and retry policy across the key pool.

Drives the attempts of one image request over rotated keys. Each failure
class has its own policy:

- 400/403: the key is recorded as invalid and removed, retry at once
- 429: exponential backoff (retry_delay * 2**attempt)
- 401, 5xx, other statuses, transport failures: flat retry_delay
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from imagen_gateway.clients.exceptions import UpstreamRetriesExhaustedError
from imagen_gateway.clients.gemini import GeminiImageClient
from imagen_gateway.clients.key_pool import KeyPool
from imagen_gateway.clients.outcomes import (
    AttemptFailure,
    InvalidCredential,
    RateLimited,
    UpstreamSuccess,
)
from imagen_gateway.core.logging_config import key_suffix

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class GeminiPoolClient:
    """
    Pool client running the per-request retry state machine.

    Features:
    - Least-used key selection, spread over distinct keys within a request
    - Durable removal of keys rejected with 400/403
    - Exponential backoff on 429, flat backoff on other transient failures
    """

    def __init__(
        self,
        client: GeminiImageClient,
        pool: KeyPool,
        max_retries: int = 3,
        retry_delay_s: float = 1.0,
        invalid_key_consumes_attempt: bool = True,
        sleep: Sleep | None = None,
    ):
        """
        Initialize Gemini pool client.

        Args:
            client: Single-attempt upstream client
            pool: Shared key pool
            max_retries: Attempts per request
            retry_delay_s: Base retry delay in seconds
            invalid_key_consumes_attempt: Count the retry after a 400/403
                against max_retries
            sleep: Awaitable delay function (for testing)
        """
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")

        self.client = client
        self.pool = pool
        self.max_retries = max_retries
        self.retry_delay_s = retry_delay_s
        self.invalid_key_consumes_attempt = invalid_key_consumes_attempt
        self._sleep = sleep or asyncio.sleep

        logger.info(
            "gemini_pool_initialized",
            extra={
                "num_keys": len(pool),
                "max_retries": max_retries,
                "retry_delay_s": retry_delay_s,
                "invalid_key_consumes_attempt": invalid_key_consumes_attempt,
            },
        )

    def _select_key(self, used_keys: set[str]) -> str:
        """
        Pick the next key, preferring ones this request has not tried yet.

        Once every active key has been tried the used set is cleared and
        reuse is allowed again.
        """
        used_keys.intersection_update(self.pool.keys)
        if len(used_keys) >= len(self.pool):
            used_keys.clear()

        key = self.pool.next_key()
        while key in used_keys and len(used_keys) < len(self.pool):
            key = self.pool.next_key()

        used_keys.add(key)
        return key

    def _backoff_delay(self, outcome: AttemptFailure, attempt: int) -> float:
        if isinstance(outcome, RateLimited):
            return self.retry_delay_s * (2 ** attempt)
        return self.retry_delay_s

    async def generate_image(self, request: dict[str, Any]) -> UpstreamSuccess:
        """
        Generate an image, rotating keys and retrying per failure class.

        Args:
            request: Validated inbound request body

        Returns:
            The first successful upstream response

        Raises:
            NoKeysAvailableError: If the pool is (or becomes) empty
            UpstreamRetriesExhaustedError: If all attempts failed
        """
        used_keys: set[str] = set()
        last_outcome: AttemptFailure | None = None
        attempt = 0

        while attempt < self.max_retries:
            key = self._select_key(used_keys)
            suffix = key_suffix(key)

            logger.info(
                "gemini_pool_attempt",
                extra={
                    "attempt": attempt + 1,
                    "max_retries": self.max_retries,
                    "key_suffix": suffix,
                },
            )

            outcome = await self.client.call(request, key)

            if isinstance(outcome, UpstreamSuccess):
                logger.info(
                    "gemini_pool_success",
                    extra={"attempt": attempt + 1, "key_suffix": suffix},
                )
                return outcome

            last_outcome = outcome
            logger.warning(
                "gemini_pool_attempt_failed",
                extra={
                    "attempt": attempt + 1,
                    "outcome": type(outcome).__name__,
                    "status_code": outcome.status_code,
                    "key_suffix": suffix,
                },
            )

            if isinstance(outcome, InvalidCredential):
                self.pool.mark_invalid(key)
                used_keys.discard(key)
                if self.invalid_key_consumes_attempt:
                    attempt += 1
                continue

            is_last_attempt = attempt >= self.max_retries - 1
            if not is_last_attempt:
                delay = self._backoff_delay(outcome, attempt)
                logger.info(
                    "gemini_pool_backoff",
                    extra={"attempt": attempt + 1, "delay_s": delay},
                )
                await self._sleep(delay)
            attempt += 1

        logger.error(
            "gemini_pool_exhausted",
            extra={
                "attempts": attempt,
                "last_outcome": type(last_outcome).__name__ if last_outcome else None,
            },
        )
        raise UpstreamRetriesExhaustedError(last_outcome, attempts=attempt)

    async def close(self) -> None:
        """Close the underlying client and its transport."""
        await self.client.close()
        logger.debug("gemini_pool_closed")

    def __repr__(self) -> str:
        return (
            f"GeminiPoolClient(num_keys={len(self.pool)}, "
            f"max_retries={self.max_retries}, retry_delay_s={self.retry_delay_s})"
        )
