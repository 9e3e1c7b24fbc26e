"""
Readiness Poller - Wait until a container announces it is ready.

mysqld writes a single "ready for connections" line once it accepts
clients. The poller re-reads the container's log stream until that line
shows up, the container dies, or the deadline passes, whichever comes
first. It is a single bounded wait without backoff.
"""

from __future__ import annotations

import re
import time
from typing import TYPE_CHECKING

from docker.errors import APIError, NotFound

from oci_tests.core.exceptions import ContainerExitedError, ReadinessTimeoutError
from oci_tests.core.logging import get_logger

if TYPE_CHECKING:
    from docker.models.containers import Container

logger = get_logger("readiness")


class ReadinessPoller:
    """
    Poll a container's logs for a readiness pattern.

    Usage:
        poller = ReadinessPoller(settings.ready_pattern, timeout=300, interval=1)
        line = poller.wait(container)  # raises ReadinessError on failure
    """

    TERMINAL_STATES = frozenset({"exited", "dead"})

    def __init__(
        self,
        pattern: str | re.Pattern[str],
        timeout: float,
        interval: float = 1.0,
        tail_lines: int = 20,
    ):
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        if isinstance(pattern, str):
            pattern = re.compile(pattern, re.MULTILINE)
        self.pattern = pattern
        self.timeout = timeout
        self.interval = interval
        self.tail_lines = tail_lines

    def wait(self, container: "Container") -> str:
        """
        Block until the pattern appears in the container's logs.

        Returns the log line holding the match. Raises ContainerExitedError
        if the container stops (or is auto-removed) first, and
        ReadinessTimeoutError once the timeout elapses without a match.
        """
        name = _container_name(container)
        deadline = time.monotonic() + self.timeout
        attempts = 0
        logs = ""
        last_error = None

        logger.debug(
            "Waiting up to %.0fs for %s to log %r",
            self.timeout, name, self.pattern.pattern,
        )

        while True:
            attempts += 1
            try:
                logs, alive, status = self._fetch(container, logs)
            except APIError as e:
                # Daemon errors count as "not ready yet"
                logger.debug("Poll %d of %s failed: %s", attempts, name, e)
                last_error = str(e)
                alive, status = True, "unknown"

            match = self.pattern.search(logs)
            if match:
                line = _line_at(logs, match.start(), match.end())
                logger.info("%s is ready after %d poll(s)", name, attempts)
                return line

            if not alive:
                raise ContainerExitedError(
                    f"Container {name} is {status} and never logged "
                    f"{self.pattern.pattern!r}",
                    details=self._details(name, attempts, logs, status=status),
                )

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ReadinessTimeoutError(
                    f"Container {name} did not log {self.pattern.pattern!r} "
                    f"within {self.timeout:g}s",
                    details=self._details(
                        name, attempts, logs, status=status, last_error=last_error
                    ),
                )

            time.sleep(min(self.interval, remaining))

    def _fetch(self, container: "Container", previous: str) -> tuple[str, bool, str]:
        """
        Read the full log stream and the current state of the container.

        NotFound means the container is gone; any other APIError is left to
        the caller.
        """
        try:
            logs = container.logs().decode("utf-8", errors="replace")
        except NotFound:
            # Auto-removed containers disappear together with their logs
            return previous, False, "removed"

        try:
            container.reload()
        except NotFound:
            return logs, False, "removed"

        status = container.status
        return logs, status not in self.TERMINAL_STATES, status

    def _details(self, name: str, attempts: int, logs: str, **extra) -> dict:
        lines = logs.strip().splitlines()
        return {
            "container": name,
            "pattern": self.pattern.pattern,
            "timeout": self.timeout,
            "attempts": attempts,
            "log_tail": lines[-self.tail_lines:] if self.tail_lines else [],
            **extra,
        }


def wait_for_log(
    container: "Container",
    pattern: str,
    timeout: float,
    interval: float = 1.0,
) -> str:
    """Wait for ``pattern`` in the logs of ``container``; see ReadinessPoller."""
    return ReadinessPoller(pattern, timeout=timeout, interval=interval).wait(container)


def _container_name(container: "Container") -> str:
    return getattr(container, "name", None) or getattr(container, "short_id", "?")


def _line_at(text: str, start: int, end: int) -> str:
    """Return the full line(s) spanned by text[start:end]."""
    line_start = text.rfind("\n", 0, start) + 1
    line_end = text.find("\n", end)
    if line_end == -1:
        line_end = len(text)
    return text[line_start:line_end].rstrip("\r")
