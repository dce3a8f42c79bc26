"""Shared pytest fixtures and configuration for all tests."""

import os
from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from _pytest.config import Config

from tests.utils.fake_store import FakeRelationStore


def pytest_configure(config: Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark a test as a unit test")
    config.addinivalue_line(
        "markers",
        "integration: mark a test as an integration test against live Jira and OpenProject",
    )
    config.addinivalue_line("markers", "slow: mark a test as slow-running")


def _env_flag(name: str, default: bool = False) -> bool:
    """Read boolean environment flag (true/false)."""
    val = os.environ.get(name, "true" if default else "false").strip().lower()
    return val in {"1", "true", "yes", "on"}


def pytest_collection_modifyitems(config: Config, items: list[pytest.Item]) -> None:
    """Apply default skipping for integration and unmarked tests.

    - Integration tests are skipped unless J2O_RUN_INTEGRATION is true.
    - Unmarked tests are skipped unless J2O_RUN_ALL_TESTS is true.
    """
    run_all = _env_flag("J2O_RUN_ALL_TESTS", False)
    run_integration = _env_flag("J2O_RUN_INTEGRATION", False) or run_all

    skip_integration = pytest.mark.skip(
        reason="Integration tests disabled by default. Set J2O_RUN_INTEGRATION=true to enable.",
    )
    skip_unmarked = pytest.mark.skip(
        reason="Unmarked test skipped by default. Mark with unit/integration or set J2O_RUN_ALL_TESTS=true.",
    )

    for item in items:
        kws = item.keywords
        if "integration" in kws and not run_integration:
            item.add_marker(skip_integration)
            continue
        if not run_all and not any(m in kws for m in ("unit", "integration")):
            item.add_marker(skip_unmarked)


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None]:
    """Flag test mode for the session and restore the environment afterwards."""
    original_env = os.environ.copy()
    os.environ["J2O_TEST_MODE"] = "true"
    os.environ["J2O_DISABLE_LOCK"] = "true"

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def tmp_var_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, Path]:
    """Point the data, results and run directories at a temporary location."""
    from j2o import config  # noqa: PLC0415

    dirs = {name: tmp_path / name for name in ("data", "results", "run")}
    for name, path in dirs.items():
        path.mkdir()
        monkeypatch.setitem(config.var_dirs, name, path)
    return dirs


@pytest.fixture
def fake_store() -> FakeRelationStore:
    """Return an empty in-memory relation store."""
    return FakeRelationStore()


@pytest.fixture
def mock_jira() -> MagicMock:
    """Return a mock of the jira library's JIRA class instance."""
    jira = MagicMock()
    jira.search_issues.return_value = []
    return jira
