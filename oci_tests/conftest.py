"""
Image Test Configuration - pytest fixtures for driving the image under test.

Every scenario runs against real containers:
1. The image is pulled once and a network is created once per run
2. Each test gets a Scenario with its own id, password and server name
3. Servers are only used after mysqld logged that it is ready
4. Containers and volumes are released after each test, pass or fail

Scenarios run one after another. Names are namespaced per run and per case.
"""

from __future__ import annotations

from typing import Generator

import docker
import pytest
from docker.errors import APIError, DockerException

from oci_tests.core.config import Settings, get_settings
from oci_tests.core.logging import get_logger, setup_logging
from oci_tests.fixtures.resources import RunNetwork, Scenario

logger = get_logger("conftest")


# =============================================================================
# CONFIGURATION
# =============================================================================


@pytest.fixture(scope="session")
def settings() -> Settings:
    """Load suite settings from the environment."""
    settings = get_settings()
    setup_logging(settings)
    return settings


# =============================================================================
# DOCKER CLIENT, IMAGE AND NETWORK
# =============================================================================


@pytest.fixture(scope="session")
def docker_client() -> Generator[docker.DockerClient, None, None]:
    """Docker client; skips the image tests when no daemon is reachable."""
    try:
        client = docker.from_env()
        client.ping()
    except DockerException as e:
        pytest.skip(f"Docker not available for image tests: {e}")

    yield client
    client.close()


@pytest.fixture(scope="session")
def image(docker_client: docker.DockerClient, settings: Settings) -> str:
    """Make sure the latest build of the image under test is used."""
    if settings.pull_image:
        logger.info("Pulling %s", settings.docker_image)
        try:
            docker_client.images.pull(settings.docker_image)
        except APIError as e:
            pytest.fail(f"Could not pull {settings.docker_image}: {e.explanation or e}")
    return settings.docker_image


@pytest.fixture(scope="session")
def network(
    docker_client: docker.DockerClient,
    settings: Settings,
    image: str,
) -> Generator[str, None, None]:
    """The network every server and client of this run is attached to."""
    with RunNetwork(docker_client, settings.network_prefix) as run_network:
        yield run_network.name


# =============================================================================
# SCENARIO (Per-test)
# =============================================================================


@pytest.fixture
def scenario(
    request: pytest.FixtureRequest,
    docker_client: docker.DockerClient,
    settings: Settings,
    network: str,
) -> Generator[Scenario, None, None]:
    """
    Fresh scenario with its own credentials and names.

    Usage in tests:
        def test_something(scenario):
            scenario.start_server(scenario.environment())
            assert scenario.client.show_databases().grep("^mysql") == ["mysql"]

    Whatever the test started is stopped and removed afterwards.
    """
    with Scenario(docker_client, settings, network) as current:
        logger.debug("%s runs as case %s", request.node.name, current.case_id)
        yield current


# =============================================================================
# PYTEST HOOKS
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: Test that starts real containers (needs a Docker daemon)",
    )
    config.addinivalue_line(
        "markers",
        "slow: Test that takes more than 10 seconds",
    )


def pytest_collection_modifyitems(config, items):
    """Mark image scenarios based on their location."""
    for item in items:
        if "/mysql/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)
