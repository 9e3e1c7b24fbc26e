"""Pytest configuration and fixtures for the harness unit tests."""

from __future__ import annotations

import os

import pytest

from fakes import FakeClock, FakeContainer
from oci_tests.core.config import Settings, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Keep the caller's suite overrides out of the unit tests."""
    for key in list(os.environ):
        if key.upper() == "DOCKER_IMAGE" or key.upper().startswith("MYSQL_TEST_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings that do not depend on the caller's environment."""
    return Settings(
        _env_file=None,
        docker_image="example/mysql:test",
        ready_timeout=5,
        poll_interval=0.5,
        stop_timeout=3,
    )


@pytest.fixture
def fake_clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """Drive the readiness poller without real sleeping."""
    import oci_tests.fixtures.readiness as readiness

    clock = FakeClock()
    monkeypatch.setattr(readiness, "time", clock)
    return clock


@pytest.fixture
def ready_container() -> FakeContainer:
    """A running container that has already logged the readiness signal."""
    from fakes import READY_LINE

    return FakeContainer(logs_sequence=[READY_LINE + "\n"])
