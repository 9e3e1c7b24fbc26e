"""
MySQL OCI Image Test Suite.

Starts the image under test with different environment inputs, waits for
mysqld to announce it is ready, talks to it with the bundled mysql client
and checks what comes back.

Key Features:
- Log based readiness polling with a hard timeout
- Per-scenario credentials, names and cleanup
- Persistent volume checks across container restarts
"""

__version__ = "0.1.0"
