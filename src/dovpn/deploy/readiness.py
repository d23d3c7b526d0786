"""Bounded polling and readiness checks for a freshly provisioned VPN host.

All waiting in a deployment goes through :func:`poll`: a fixed number of
attempts with a fixed sleep between them. Nothing loops without a bound.
"""

from __future__ import annotations

import logging
import shlex
import socket
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

from dovpn.config.defaults import (
    DEFAULT_PORT_ATTEMPTS,
    DEFAULT_PORT_INTERVAL,
    DEFAULT_SERVICE_ATTEMPTS,
    DEFAULT_SERVICE_INTERVAL,
    DEFAULT_SETTLE_DELAY,
    SSH_PORT,
)
from dovpn.lib.errors import NetworkTimeoutError, RemoteExecutionError

if TYPE_CHECKING:
    from dovpn.deploy.remote import RemoteExecutor

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleeper = Callable[[float], None]
Connector = Callable[[tuple[str, int], float], socket.socket]

CONNECT_TIMEOUT = 5.0


def poll(
    check: Callable[[], T | None],
    *,
    attempts: int,
    interval: float,
    operation: str,
    sleep: Sleeper = time.sleep,
    message: str = "",
) -> T:
    """Call ``check`` until it returns a truthy value or attempts run out.

    ``check`` is called at most ``attempts`` times with ``interval`` seconds
    of sleep between calls. The first truthy result is returned immediately.

    Args:
        check: Zero-argument callable returning a truthy value when ready
        attempts: Maximum number of calls to ``check``
        interval: Seconds to sleep between calls
        operation: Description used in logs and the timeout error
        sleep: Sleep function (injectable for tests)
        message: Optional message for the timeout error

    Returns:
        The first truthy value returned by ``check``

    Raises:
        NetworkTimeoutError: If no call succeeded within ``attempts``
        ValueError: If ``attempts`` is less than 1
    """
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")

    for attempt in range(1, attempts + 1):
        result = check()
        if result:
            logger.debug(f"{operation}: ready after {attempt} attempt(s)")
            return result
        logger.debug(f"{operation}: attempt {attempt}/{attempts} not ready")
        if attempt < attempts:
            sleep(interval)

    raise NetworkTimeoutError(operation, attempts, message)


class ReadinessProber:
    """Waits for the VPN host's SSH port and VPN service to come up.

    Attributes:
        port_attempts: Connection attempts per port wait
        port_interval: Seconds between connection attempts
        service_attempts: Log checks per service wait
        service_interval: Seconds between log checks
        settle_delay: Pause after the service is up, before reading secrets
    """

    def __init__(
        self,
        *,
        port_attempts: int = DEFAULT_PORT_ATTEMPTS,
        port_interval: float = DEFAULT_PORT_INTERVAL,
        service_attempts: int = DEFAULT_SERVICE_ATTEMPTS,
        service_interval: float = DEFAULT_SERVICE_INTERVAL,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        sleep: Sleeper = time.sleep,
        connect: Connector = socket.create_connection,
    ) -> None:
        """Initialize the prober.

        Args:
            port_attempts: Connection attempts per port wait
            port_interval: Seconds between connection attempts
            service_attempts: Log checks per service wait
            service_interval: Seconds between log checks
            settle_delay: Pause after the service is up
            sleep: Sleep function (injectable for tests)
            connect: TCP connect function (injectable for tests)
        """
        self.port_attempts = port_attempts
        self.port_interval = port_interval
        self.service_attempts = service_attempts
        self.service_interval = service_interval
        self.settle_delay = settle_delay
        self._sleep = sleep
        self._connect = connect

    def wait_for_port(self, host: str, port: int) -> None:
        """Block until a TCP connection to ``host:port`` succeeds.

        Raises:
            NetworkTimeoutError: If the port never opened
        """

        def check() -> bool:
            try:
                conn = self._connect((host, port), CONNECT_TIMEOUT)
            except OSError as e:
                logger.debug(f"Connection to {host}:{port} failed: {e}")
                return False
            conn.close()
            return True

        poll(
            check,
            attempts=self.port_attempts,
            interval=self.port_interval,
            operation=f"waiting for port {port}",
            sleep=self._sleep,
            message=f"timed out waiting for port {port} to open on {host}",
        )

    def wait_for_ssh(self, host: str) -> None:
        """Block until SSH accepts connections on ``host``."""
        self.wait_for_port(host, SSH_PORT)

    def wait_for_service_log(
        self,
        executor: RemoteExecutor,
        user: str,
        host: str,
        workload: str,
    ) -> None:
        """Block until the named container has written log output.

        Each attempt runs one short ``docker logs`` command on the host. A
        failing command (container not created yet) counts as not ready.
        After the first output, waits ``settle_delay`` seconds so the
        service can finish writing its certificates.

        Raises:
            NetworkTimeoutError: If the container never produced output
        """
        command = f"docker logs --tail 1 {shlex.quote(workload)} 2>&1"

        def check() -> bool:
            try:
                output = executor.run(user, host, command)
            except RemoteExecutionError as e:
                logger.debug(f"Service {workload} not ready: {e.message}")
                return False
            return bool(output.strip())

        poll(
            check,
            attempts=self.service_attempts,
            interval=self.service_interval,
            operation=f"waiting for service {workload}",
            sleep=self._sleep,
            message=f"timed out waiting for {workload} to start on {host}",
        )
        if self.settle_delay:
            self._sleep(self.settle_delay)
