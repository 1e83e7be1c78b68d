"""
Durable record of API keys the upstream has rejected as invalid.

The record is a JSON array of key strings. It is read once at startup and
rewritten in full whenever a new invalid key is discovered, so a restart
never retries a key that is already known to be bad.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from imagen_gateway.core.logging_config import key_suffix

logger = logging.getLogger(__name__)


class InvalidKeyStore:
    """
    Append-only set of invalid API keys backed by a JSON file.

    Usage:
        store = InvalidKeyStore("invalid_keys.json")
        if api_key not in store:
            ...
        store.add(api_key)
    """

    def __init__(self, path: str | Path):
        """
        Load the invalid-key record.

        Args:
            path: JSON file location. A missing, unreadable or malformed
                  file yields an empty set.
        """
        self.path = Path(path)
        self._keys: set[str] = self._load()

    def _load(self) -> set[str]:
        if not self.path.exists():
            logger.debug(f"Invalid key record not found: {self.path}, starting empty")
            return set()

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read invalid key record {self.path}: {e}")
            return set()

        if not isinstance(data, list):
            logger.warning(f"Invalid key record {self.path} is not a JSON array, ignoring it")
            return set()

        keys = {item for item in data if isinstance(item, str) and item}
        logger.info(
            "invalid_keys_loaded",
            extra={"path": str(self.path), "count": len(keys)},
        )
        return keys

    def _persist(self) -> None:
        """Rewrite the whole record, replacing the file atomically."""
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(sorted(self._keys), f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)

    def has(self, api_key: str) -> bool:
        return api_key in self._keys

    def add(self, api_key: str) -> bool:
        """
        Record a key as invalid and persist the record before returning.

        A failed write is logged and swallowed: serving continues, the key
        may only be retried after a restart.

        Returns:
            True if the key was not already recorded
        """
        if api_key in self._keys:
            return False

        self._keys.add(api_key)
        try:
            self._persist()
        except OSError:
            logger.exception(
                "invalid_keys_persist_failed",
                extra={"path": str(self.path), "key_suffix": key_suffix(api_key)},
            )
        else:
            logger.info(
                "invalid_key_recorded",
                extra={
                    "path": str(self.path),
                    "key_suffix": key_suffix(api_key),
                    "count": len(self._keys),
                },
            )
        return True

    def get_all(self) -> set[str]:
        """Copy of all recorded keys."""
        return set(self._keys)

    def __contains__(self, api_key: object) -> bool:
        return api_key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"InvalidKeyStore(path={str(self.path)!r}, count={len(self._keys)})"
