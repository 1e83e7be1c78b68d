"""
Pytest configuration and fixtures for gateway tests.

Provides:
- Default MockTransport standing in for the Gemini endpoint
- Settings factory isolated from the process environment and .env
- Async test client for the FastAPI app
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from mock_upstream import MockTransport

from imagen_gateway.clients.gemini import GeminiTransport
from imagen_gateway.core.config import Settings
from imagen_gateway.main import create_app


@pytest.fixture
def invalid_keys_path(tmp_path: Path) -> Path:
    return tmp_path / "invalid_keys.json"


@pytest.fixture
def make_settings(invalid_keys_path: Path) -> Callable[..., Settings]:
    """Factory for Settings that ignores the environment's .env file."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "gemini_api_keys": "key-aaaaaaaa1,key-bbbbbbbb2,key-cccccccc3",
            "invalid_keys_file": str(invalid_keys_path),
            "retry_delay": 0,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def transport() -> MockTransport:
    return MockTransport()


@pytest.fixture
def make_app(make_settings: Callable[..., Settings]) -> Callable[..., FastAPI]:
    """Factory for a fresh app wired to the given transport."""

    def _make(transport: GeminiTransport, **settings_overrides: Any) -> FastAPI:
        return create_app(make_settings(**settings_overrides), transport=transport)

    return _make


@pytest.fixture
def client_for() -> Callable[[FastAPI], AsyncClient]:
    """
    Build an async HTTP test client for an app.

    Usage:
        async with client_for(app) as client:
            response = await client.post(...)
    """

    def _make(app: FastAPI) -> AsyncClient:
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    return _make
