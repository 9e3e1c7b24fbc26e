"""
MySQL Client Wrapper - Run SQL against a server instance.

Statements are piped into the mysql client shipped in the image under
test, started as a throw-away container on the same network:

    docker run --network N --rm -i IMAGE mysql -h HOST -u USER -pPASS -s [DB]

stdout and stderr are merged, so failures show up in the output that the
scenarios assert on.
"""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from oci_tests.core.config import Settings
from oci_tests.core.exceptions import ClientCommandError
from oci_tests.core.logging import get_logger

logger = get_logger("client")


def filter_noise(text: str, noise: Iterable[str]) -> str:
    """Drop lines that are exactly equal to one of ``noise``.

    mysql always warns when it is given the password on the command line.
    """
    drop = set(noise)
    if not drop:
        return text
    kept = [line for line in text.splitlines() if line not in drop]
    return "\n".join(kept) + ("\n" if kept and text.endswith("\n") else "")


@dataclass
class ClientResult:
    """Output of one client invocation."""

    sql: str
    output: str
    returncode: int
    command: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def lines(self) -> list[str]:
        return [line for line in self.output.splitlines() if line]

    @property
    def rows(self) -> list[tuple[str, ...]]:
        """Tab-delimited rows, one per non-empty line."""
        return [tuple(line.split("\t")) for line in self.lines]

    def grep(self, pattern: str) -> list[str]:
        """Lines matching ``pattern`` (``re.search`` semantics)."""
        regex = re.compile(pattern)
        return [line for line in self.lines if regex.search(line)]

    def joined(self, separator: str = "%") -> list[str]:
        """Rows with their fields joined by ``separator``."""
        return [separator.join(row) for row in self.rows]

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


class MySQLClient:
    """
    Issue SQL to one server instance.

    Usage:
        client = MySQLClient(settings, network="mysql_test_ab12", host="mysql_test_123",
                             password=password)
        result = client.run("SHOW DATABASES;")
        assert result.grep("^mysql") == ["mysql"]
    """

    def __init__(
        self,
        settings: Settings,
        network: str,
        host: str,
        password: str,
    ):
        self.settings = settings
        self.network = network
        self.host = host
        self.password = password

    def command(self, user: str = "root", database: str | None = None) -> list[str]:
        cmd = [
            self.settings.runtime_command, "run",
            "--network", self.network,
            "--rm",
            "-i",
            self.settings.docker_image,
            "mysql",
            "-h", self.host,
            "-u", user,
            f"-p{self.password}",
            "-s",
        ]
        if database:
            cmd.append(database)
        return cmd

    def run(
        self,
        sql: str,
        user: str = "root",
        database: str | None = None,
        check: bool = True,
    ) -> ClientResult:
        """
        Pipe ``sql`` into the client and return its filtered output.

        Raises ClientCommandError when the client exits non-zero and
        ``check`` is set.
        """
        cmd = self.command(user=user, database=database)
        if not sql.endswith("\n"):
            sql += "\n"

        logger.debug("Running as %s on %s: %s", user, database or "-", sql.strip())

        try:
            completed = subprocess.run(
                cmd,
                input=sql,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.settings.client_timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ClientCommandError(
                f"Client timed out after {self.settings.client_timeout}s",
                details={"command": self._redacted(cmd), "sql": sql},
            ) from e

        output = filter_noise(completed.stdout or "", self.settings.client_noise)
        result = ClientResult(
            sql=sql,
            output=output,
            returncode=completed.returncode,
            command=self._redacted(cmd),
        )

        if check and not result.ok:
            raise ClientCommandError(
                f"Client exited with status {completed.returncode}: {result.text[:300]}",
                details={
                    "command": result.command,
                    "sql": sql,
                    "returncode": completed.returncode,
                    "output": output,
                },
            )

        return result

    def show_databases(self, user: str = "root") -> ClientResult:
        return self.run("SHOW DATABASES;", user=user)

    def create_database(self, name: str, user: str = "root") -> ClientResult:
        return self.run(f"CREATE DATABASE {name};", user=user)

    def _redacted(self, cmd: Sequence[str]) -> list[str]:
        secret = f"-p{self.password}"
        return ["-p***" if part == secret else part for part in cmd]
