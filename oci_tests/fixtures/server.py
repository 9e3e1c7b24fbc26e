"""
Server Instances - Lifecycle of the database container under test.

Each instance moves through STARTING -> READY -> STOPPED -> REMOVED.
READY is only ever entered after the readiness signal was observed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from docker.errors import APIError, NotFound
from docker.types import Mount

from oci_tests.core.exceptions import ContainerStartError
from oci_tests.core.logging import get_logger

if TYPE_CHECKING:
    import docker
    from docker.models.containers import Container

    from oci_tests.fixtures.readiness import ReadinessPoller

logger = get_logger("server")


class InstanceState(str, Enum):
    STARTING = "starting"
    READY = "ready"
    STOPPED = "stopped"
    REMOVED = "removed"


def server_environment(
    root_password: str | None = None,
    database: str | None = None,
    user: str | None = None,
    password: str | None = None,
) -> dict[str, str]:
    """Build the image's initialization inputs, leaving out unset ones."""
    env = {
        "MYSQL_ROOT_PASSWORD": root_password,
        "MYSQL_DATABASE": database,
        "MYSQL_USER": user,
        "MYSQL_PASSWORD": password,
    }
    return {key: value for key, value in env.items() if value is not None}


@dataclass
class ServerSpec:
    """How to launch one server container."""

    image: str
    name: str
    network: str
    environment: dict[str, str] = field(default_factory=dict)
    volume: str | None = None
    mount_target: str = "/var/lib/mysql"
    auto_remove: bool = True

    def mounts(self) -> list[Mount]:
        if not self.volume:
            return []
        return [Mount(target=self.mount_target, source=self.volume, type="volume")]


class ServerInstance:
    """
    A running server container.

    Usage:
        instance = ServerInstance.start(docker_client, spec)
        instance.wait_ready(poller)
        ...
        instance.stop_sync()
    """

    def __init__(self, container: "Container", spec: ServerSpec):
        self.container = container
        self.spec = spec
        self.state = InstanceState.STARTING

    @classmethod
    def start(cls, docker_client: "docker.DockerClient", spec: ServerSpec) -> "ServerInstance":
        """Run the image detached on the shared network."""
        logger.debug(
            "Starting %s from %s with %s",
            spec.name, spec.image, " ".join(f"{k}={v}" for k, v in spec.environment.items()),
        )
        try:
            container = docker_client.containers.run(
                spec.image,
                detach=True,
                remove=spec.auto_remove,
                name=spec.name,
                network=spec.network,
                environment=spec.environment,
                mounts=spec.mounts(),
            )
        except APIError as e:
            raise ContainerStartError(
                f"Failed to start {spec.name}: {e.explanation or e}",
                details={"container": spec.name, "image": spec.image},
            ) from e

        if container is None or not getattr(container, "id", None):
            raise ContainerStartError(
                f"Runtime returned no container for {spec.name}",
                details={"container": spec.name, "image": spec.image},
            )

        logger.info("Started %s (%s)", spec.name, container.short_id)
        return cls(container, spec)

    @property
    def name(self) -> str:
        return self.spec.name

    def wait_ready(self, poller: "ReadinessPoller") -> str:
        """Block until the readiness signal shows up; returns the log line."""
        line = poller.wait(self.container)
        self.state = InstanceState.READY
        return line

    def logs(self) -> str:
        try:
            return self.container.logs().decode("utf-8", errors="replace")
        except NotFound:
            return ""

    def stop_sync(self, timeout: int = 10) -> None:
        """
        Stop the container and wait until the runtime has removed it.

        Returns only once the name is free again, so a new instance can be
        started under the same name right away. Safe to call repeatedly.
        """
        if self.state is InstanceState.REMOVED:
            return

        logger.debug("Stopping %s", self.name)
        try:
            self.container.stop(timeout=timeout)
            self.state = InstanceState.STOPPED
            if self.spec.auto_remove:
                self.container.wait(condition="removed")
            else:
                self.container.remove(force=True)
        except NotFound:
            # Already gone, nothing left to wait for
            pass

        self.state = InstanceState.REMOVED
        logger.info("Removed %s", self.name)
