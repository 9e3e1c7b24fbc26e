"""
Harness fixtures package.
"""

from oci_tests.fixtures.client import ClientResult, MySQLClient, filter_noise
from oci_tests.fixtures.readiness import ReadinessPoller, wait_for_log
from oci_tests.fixtures.resources import RunNetwork, Scenario, new_case_id, new_password
from oci_tests.fixtures.server import (
    InstanceState,
    ServerInstance,
    ServerSpec,
    server_environment,
)

__all__ = [
    "ClientResult",
    "MySQLClient",
    "filter_noise",
    "ReadinessPoller",
    "wait_for_log",
    "RunNetwork",
    "Scenario",
    "new_case_id",
    "new_password",
    "InstanceState",
    "ServerInstance",
    "ServerSpec",
    "server_environment",
]
