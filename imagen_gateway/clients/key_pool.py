"""
Active Gemini API key pool with least-used selection.

The pool is the single piece of shared mutable state behind every request:
the ordered list of usable keys, their usage counters and the durable
invalid-key record. None of its methods await, so each call is atomic with
respect to other asyncio tasks.
"""

from __future__ import annotations

import logging
from typing import Any

from imagen_gateway.clients.exceptions import NoKeysAvailableError
from imagen_gateway.core.invalid_keys import InvalidKeyStore
from imagen_gateway.core.logging_config import key_suffix

logger = logging.getLogger(__name__)


class KeyPool:
    """
    Ordered pool of usable API keys.

    Selection is greedy least-used: the key with the smallest usage count
    wins, ties go to the earliest key in configuration order. Counts only
    grow, so load evens out over the process lifetime.
    """

    def __init__(self, api_keys: list[str], invalid_store: InvalidKeyStore):
        """
        Build the pool from configured keys minus known-invalid ones.

        Args:
            api_keys: Configured keys, in priority order (duplicates collapsed)
            invalid_store: Durable record of keys rejected by upstream
        """
        self.invalid_store = invalid_store

        self._keys: list[str] = []
        self._usage: dict[str, int] = {}
        excluded = 0
        for key in api_keys:
            if key in self._usage:
                continue
            if key in invalid_store:
                excluded += 1
                continue
            self._keys.append(key)
            self._usage[key] = 0

        logger.info(
            "key_pool_initialized",
            extra={
                "configured_keys": len(api_keys),
                "active_keys": len(self._keys),
                "excluded_invalid": excluded,
            },
        )
        if not self._keys:
            logger.warning("key_pool_empty", extra={"configured_keys": len(api_keys)})

    def next_key(self) -> str:
        """
        Return the least-used key and count one use against it.

        Raises:
            NoKeysAvailableError: If the pool is empty
        """
        if not self._keys:
            raise NoKeysAvailableError()

        selected = self._keys[0]
        min_usage = self._usage[selected]
        for key in self._keys:
            usage = self._usage[key]
            if usage < min_usage:
                min_usage = usage
                selected = key

        self._usage[selected] = min_usage + 1
        return selected

    def remove(self, api_key: str) -> None:
        """Drop a key and its usage counter from the pool."""
        if api_key not in self._usage:
            return
        self._keys.remove(api_key)
        del self._usage[api_key]

    def mark_invalid(self, api_key: str) -> None:
        """Record a key as permanently invalid and remove it from rotation."""
        self.invalid_store.add(api_key)
        self.remove(api_key)
        logger.warning(
            "key_removed_from_pool",
            extra={"key_suffix": key_suffix(api_key), "remaining_keys": len(self._keys)},
        )

    @property
    def keys(self) -> list[str]:
        return list(self._keys)

    @property
    def usage(self) -> dict[str, int]:
        return dict(self._usage)

    @property
    def is_empty(self) -> bool:
        return not self._keys

    def get_pool_stats(self) -> dict[str, Any]:
        """Get pool statistics for monitoring."""
        return {
            "active_keys": len(self._keys),
            "invalid_keys": len(self.invalid_store),
            "usage": {key_suffix(key): self._usage[key] for key in self._keys},
        }

    def __contains__(self, api_key: object) -> bool:
        return api_key in self._usage

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"KeyPool(active_keys={len(self._keys)}, invalid_keys={len(self.invalid_store)})"
