"""Shared pytest fixtures and test-run configuration."""

from __future__ import annotations

import os

import pytest

from tests.fakes import FakeClock, RecordingSink


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add the switch that enables live-API tests."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run tests marked as integration (live Rami API).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly enabled."""
    if config.getoption("--run-integration") or os.getenv("RUN_INTEGRATION_TESTS") == "1":
        return

    skip_marker = pytest.mark.skip(
        reason="Live Rami tests are off. Use --run-integration or set RUN_INTEGRATION_TESTS=1."
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_marker)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _isolate_runner_env(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep runner and developer environment variables out of unit tests."""
    if request.node.get_closest_marker("integration") is not None:
        return
    for name in list(os.environ):
        if name.startswith(("RAMI_", "INPUT_", "GITHUB_", "ACTIONS_ID_TOKEN_")):
            monkeypatch.delenv(name, raising=False)
