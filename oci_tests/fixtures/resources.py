"""
Scenario Resources - Networks, volumes and servers with guaranteed release.

A Scenario owns everything one test case creates. Resources are pushed on
an ExitStack as they are acquired and released in reverse order when the
scenario ends, whatever the outcome. Release is best-effort: a failing
teardown is logged, never raised.
"""

from __future__ import annotations

import secrets
from contextlib import ExitStack
from typing import TYPE_CHECKING

from docker.errors import APIError

from oci_tests.core.config import Settings
from oci_tests.core.exceptions import HarnessError
from oci_tests.core.logging import case_id_var, get_logger
from oci_tests.fixtures.client import MySQLClient
from oci_tests.fixtures.readiness import ReadinessPoller
from oci_tests.fixtures.server import ServerInstance, ServerSpec, server_environment

if TYPE_CHECKING:
    import docker
    from docker.models.networks import Network
    from docker.models.volumes import Volume

logger = get_logger("resources")


def new_case_id() -> str:
    """Unpredictable numeric identifier, also usable as an INT column value."""
    return str(100_000 + secrets.randbelow(900_000))


def new_password() -> str:
    """16 random hex characters."""
    return secrets.token_hex(8)


class RunNetwork:
    """The isolation network shared by every scenario of one run."""

    def __init__(
        self,
        docker_client: "docker.DockerClient",
        prefix: str,
        token: str | None = None,
    ):
        self.docker_client = docker_client
        self.name = f"{prefix}_{token or secrets.token_hex(4)}"
        self.network: "Network | None" = None

    def create(self) -> str:
        try:
            self.network = self.docker_client.networks.create(self.name, driver="bridge")
        except APIError as e:
            raise HarnessError(
                f"Failed to create network {self.name}: {e.explanation or e}",
                error_code="NETWORK_FAILED",
            ) from e
        logger.info("Created network %s", self.name)
        return self.name

    def remove(self) -> None:
        if self.network is None:
            return
        try:
            self.network.remove()
            logger.info("Removed network %s", self.name)
        except Exception as e:
            logger.warning("Could not remove network %s: %s", self.name, e)
        finally:
            self.network = None

    def __enter__(self) -> "RunNetwork":
        self.create()
        return self

    def __exit__(self, *exc_info) -> None:
        self.remove()


class Scenario:
    """
    One self-contained test case: fresh identity, servers, volumes.

    Usage:
        with Scenario(docker_client, settings, network.name) as scenario:
            scenario.start_server(scenario.environment())
            result = scenario.client.show_databases()
    """

    def __init__(
        self,
        docker_client: "docker.DockerClient",
        settings: Settings,
        network: str,
        case_id: str | None = None,
        password: str | None = None,
    ):
        self.docker_client = docker_client
        self.settings = settings
        self.network = network
        self.case_id = case_id or new_case_id()
        self.password = password or new_password()
        self.server_name = f"{settings.container_prefix}_{self.case_id}"
        self.client = MySQLClient(settings, network, self.server_name, self.password)
        self.server: ServerInstance | None = None
        self._stack = ExitStack()
        self._token = None

    def __enter__(self) -> "Scenario":
        self._token = case_id_var.set(self.case_id)
        return self

    def __exit__(self, *exc_info) -> bool:
        self.close()
        return False

    def close(self) -> None:
        """Release every acquired resource, most recent first."""
        try:
            self._stack.close()
        finally:
            if self._token is not None:
                case_id_var.reset(self._token)
                self._token = None

    def environment(self, root_password: str | None = None, **inputs) -> dict[str, str]:
        """Initialization inputs; the root password defaults to the case's."""
        return server_environment(
            root_password=root_password or self.password, **inputs
        )

    def poller(
        self,
        pattern: str | None = None,
        timeout: float | None = None,
    ) -> ReadinessPoller:
        return ReadinessPoller(
            pattern or self.settings.ready_pattern,
            timeout=timeout if timeout is not None else self.settings.ready_timeout,
            interval=self.settings.poll_interval,
        )

    def start_server(
        self,
        environment: dict[str, str],
        volume: str | None = None,
        wait: bool = True,
    ) -> ServerInstance:
        """Start a server under the case's name and, by default, wait for it."""
        spec = ServerSpec(
            image=self.settings.docker_image,
            name=self.server_name,
            network=self.network,
            environment=environment,
            volume=volume,
            mount_target=self.settings.data_dir,
        )
        instance = ServerInstance.start(self.docker_client, spec)
        self.server = instance
        self._stack.callback(self._release_server, instance)

        if wait:
            instance.wait_ready(self.poller())
        return instance

    def stop_server(self) -> None:
        """Stop the current server and wait until its name is free again."""
        if self.server is not None:
            self.server.stop_sync(timeout=self.settings.stop_timeout)

    def create_volume(self) -> str:
        try:
            volume = self.docker_client.volumes.create()
        except APIError as e:
            raise HarnessError(
                f"Failed to create a volume: {e.explanation or e}",
                error_code="VOLUME_FAILED",
            ) from e
        if volume is None or not volume.name:
            raise HarnessError("Runtime returned no volume", error_code="VOLUME_FAILED")

        self._stack.callback(self._release_volume, volume)
        logger.debug("Created volume %s", volume.name)
        return volume.name

    def _release_server(self, instance: ServerInstance) -> None:
        try:
            instance.stop_sync(timeout=self.settings.stop_timeout)
        except Exception as e:
            logger.warning("Could not stop %s: %s", instance.name, e)

    def _release_volume(self, volume: "Volume") -> None:
        try:
            volume.remove(force=True)
            logger.debug("Removed volume %s", volume.name)
        except Exception as e:
            logger.warning("Could not remove volume %s: %s", volume.name, e)
