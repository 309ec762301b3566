"""
Pytest configuration and shared fixtures for toolmesh tests.
"""

import io
from pathlib import Path

import pytest

from toolmesh.events import EventBus
from toolmesh.logging import LogConfig, MeshLogger
from toolmesh.store import InMemoryServerStore
from toolmesh.types import LogFormat, LogLevel

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def tests_dir() -> Path:
    """Return the tests directory."""
    return Path(__file__).parent


# =============================================================================
# Logging Fixtures
# =============================================================================


@pytest.fixture
def log_output() -> io.StringIO:
    """Buffer collecting logger output."""
    return io.StringIO()


@pytest.fixture
def logger(log_output: io.StringIO) -> MeshLogger:
    """JSON logger at DEBUG level writing to ``log_output``."""
    return MeshLogger(LogConfig(level=LogLevel.DEBUG, format=LogFormat.JSON, output=log_output))


# =============================================================================
# Router Collaborators
# =============================================================================


@pytest.fixture
def bus(logger: MeshLogger) -> EventBus:
    """Fresh event bus."""
    return EventBus(logger=logger)


@pytest.fixture
def store() -> InMemoryServerStore:
    """Empty in-memory server store."""
    return InMemoryServerStore()


# =============================================================================
# Markers Configuration
# =============================================================================


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "property: Property-based tests")
    config.addinivalue_line("markers", "slow: Slow tests")
