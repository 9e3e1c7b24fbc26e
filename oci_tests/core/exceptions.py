"""Harness exceptions."""

from __future__ import annotations

from typing import Any


class HarnessError(Exception):
    """Base harness exception with a structured description."""

    error_code: str = "HARNESS_ERROR"
    message: str = "The test harness failed"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            **({"details": self.details} if self.details else {}),
        }


class ContainerStartError(HarnessError):
    """The runtime did not hand back a running instance."""

    error_code = "STARTUP_FAILED"
    message = "Failed to start the container"


class ReadinessError(HarnessError):
    """The instance never became ready."""

    error_code = "NOT_READY"
    message = "Container did not become ready"

    @property
    def log_tail(self) -> list[str]:
        return self.details.get("log_tail", [])

    def __str__(self) -> str:
        tail = self.log_tail
        if not tail:
            return self.message
        lines = "\n".join(f"  | {line}" for line in tail)
        return f"{self.message}\nLast log lines:\n{lines}"


class ReadinessTimeoutError(ReadinessError):
    """The readiness signal did not show up within the timeout."""

    error_code = "READINESS_TIMEOUT"
    message = "Timed out waiting for the readiness signal"


class ContainerExitedError(ReadinessError):
    """The instance stopped or vanished before signalling readiness."""

    error_code = "CONTAINER_EXITED"
    message = "Container exited before becoming ready"


class ClientCommandError(HarnessError):
    """The database client exited with a non-zero status."""

    error_code = "CLIENT_FAILED"
    message = "Client command failed"

    @property
    def returncode(self) -> int | None:
        return self.details.get("returncode")

    @property
    def output(self) -> str:
        return self.details.get("output", "")
