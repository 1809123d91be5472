"""
smoked Test Configuration

Shared pytest fixtures and configuration for all test types.
"""

import os
from typing import Generator

import pytest

from smoked.core.config import LEGACY_ENV_KEYS, Settings, reset_settings
from smoked.core.models import ExecutionResult


# Configure pytest collection
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests (spawn real processes)")
    config.addinivalue_line("markers", "safety: Safety-critical tests (injection, validation)")


def _is_smoked_var(name: str) -> bool:
    return name.startswith("SMOKED_") or name in LEGACY_ENV_KEYS


@pytest.fixture(autouse=True)
def clean_smoked_env() -> Generator[None, None, None]:
    """Reset settings singleton and smoked environment variables before each test."""
    reset_settings()
    saved = {k: v for k, v in os.environ.items() if _is_smoked_var(k)}
    for key in saved:
        del os.environ[key]

    yield

    reset_settings()
    for key in [k for k in os.environ if _is_smoked_var(k)]:
        del os.environ[key]
    os.environ.update(saved)


@pytest.fixture
def settings() -> Settings:
    """Default settings, no config file."""
    return Settings()


@pytest.fixture
def config_values() -> dict:
    """Flat config store for resolver tests."""
    return {"feature.ping.count": "5"}


@pytest.fixture
def config_lookup(config_values):
    """ConfigLookup backed by ``config_values`` (missing keys → "")."""
    return lambda key: config_values.get(key, "")


@pytest.fixture
def ok_result() -> ExecutionResult:
    """A successful execution result."""
    return ExecutionResult(output=b"PING ok", exit_code=0, duration_ms=5)


@pytest.fixture
def failed_result() -> ExecutionResult:
    """A non-zero-exit execution result."""
    return ExecutionResult(
        output=b"ping: unknown host",
        exit_code=2,
        duration_ms=5,
        error="exit status 2",
        error_type="NON_ZERO_EXIT",
    )
