"""Unit tests for bounded polling and readiness checks."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from dovpn.deploy.readiness import ReadinessProber, poll
from dovpn.lib.errors import NetworkTimeoutError, RemoteExecutionError


class _Counter:
    """Check function failing a fixed number of times before succeeding."""

    def __init__(self, failures: int, result: Any = True) -> None:
        self.failures = failures
        self.result = result
        self.calls = 0

    def __call__(self) -> Any:
        self.calls += 1
        if self.calls <= self.failures:
            return None
        return self.result


@pytest.mark.unit
class TestPoll:
    """Tests for the poll primitive."""

    def test_returns_first_truthy_result(self, no_sleep) -> None:
        """poll returns the check's value as soon as it is truthy."""
        check = _Counter(failures=2, result="ready")

        result = poll(check, attempts=5, interval=1.5, operation="op", sleep=no_sleep)

        assert result == "ready"
        assert check.calls == 3
        assert no_sleep.calls == [1.5, 1.5]

    def test_immediate_success_never_sleeps(self, no_sleep) -> None:
        """A check that succeeds first time causes no sleep."""
        poll(_Counter(failures=0), attempts=3, interval=5, operation="op", sleep=no_sleep)
        assert no_sleep.calls == []

    @pytest.mark.parametrize("attempts", [1, 2, 15])
    def test_exhaustion_calls_check_exactly_attempts_times(
        self, no_sleep, attempts: int
    ) -> None:
        """A never-ready check is called exactly `attempts` times."""
        check = _Counter(failures=10_000)

        with pytest.raises(NetworkTimeoutError) as exc_info:
            poll(check, attempts=attempts, interval=5, operation="op", sleep=no_sleep)

        assert check.calls == attempts
        assert len(no_sleep.calls) == attempts - 1
        assert exc_info.value.attempts == attempts
        assert exc_info.value.operation == "op"

    def test_timeout_message_override(self, no_sleep) -> None:
        """The optional message is used in the timeout error."""
        with pytest.raises(NetworkTimeoutError, match="port 22 never opened"):
            poll(
                _Counter(failures=5),
                attempts=2,
                interval=0,
                operation="ssh",
                sleep=no_sleep,
                message="port 22 never opened",
            )

    def test_zero_attempts_rejected(self, no_sleep) -> None:
        """At least one attempt is required."""
        with pytest.raises(ValueError):
            poll(_Counter(0), attempts=0, interval=1, operation="op", sleep=no_sleep)


@pytest.mark.unit
class TestWaitForPort:
    """Tests for ReadinessProber.wait_for_port."""

    def test_closes_probe_connection(self, no_sleep) -> None:
        """A successful connect is closed immediately."""
        conn = MagicMock()
        connect = MagicMock(return_value=conn)
        prober = ReadinessProber(sleep=no_sleep, connect=connect)

        prober.wait_for_port("203.0.113.10", 22)

        connect.assert_called_once_with(("203.0.113.10", 22), 5.0)
        conn.close.assert_called_once()

    def test_retries_on_connection_errors(self, no_sleep) -> None:
        """Refused connections are retried after the port interval."""
        conn = MagicMock()
        connect = MagicMock(
            side_effect=[ConnectionRefusedError(), TimeoutError(), conn]
        )
        prober = ReadinessProber(port_interval=5.0, sleep=no_sleep, connect=connect)

        prober.wait_for_port("203.0.113.10", 22)

        assert connect.call_count == 3
        assert no_sleep.calls == [5.0, 5.0]

    def test_times_out_after_port_attempts(self, no_sleep) -> None:
        """The port wait gives up after port_attempts connects."""
        connect = MagicMock(side_effect=OSError("unreachable"))
        prober = ReadinessProber(port_attempts=15, sleep=no_sleep, connect=connect)

        with pytest.raises(NetworkTimeoutError, match="port 22 to open"):
            prober.wait_for_ssh("203.0.113.10")

        assert connect.call_count == 15


@pytest.mark.unit
class TestWaitForServiceLog:
    """Tests for ReadinessProber.wait_for_service_log."""

    def test_ready_when_log_has_output(self, no_sleep) -> None:
        """Non-empty log output ends the wait, followed by the settle delay."""
        executor = MagicMock()
        executor.run.side_effect = [
            RemoteExecutionError("h", "No such container: dosxvpn"),
            "",
            "ipsec started\n",
        ]
        prober = ReadinessProber(
            service_interval=2.0, settle_delay=5.0, sleep=no_sleep
        )

        prober.wait_for_service_log(executor, "root", "203.0.113.10", "dosxvpn")

        assert executor.run.call_count == 3
        executor.run.assert_called_with(
            "root", "203.0.113.10", "docker logs --tail 1 dosxvpn 2>&1"
        )
        assert no_sleep.calls == [2.0, 2.0, 5.0]

    def test_times_out_when_never_logging(self, no_sleep) -> None:
        """A silent container times out after service_attempts checks."""
        executor = MagicMock()
        executor.run.return_value = "   \n"
        prober = ReadinessProber(service_attempts=4, sleep=no_sleep)

        with pytest.raises(NetworkTimeoutError) as exc_info:
            prober.wait_for_service_log(executor, "root", "h", "dosxvpn")

        assert executor.run.call_count == 4
        assert exc_info.value.attempts == 4

    def test_workload_name_is_quoted(self, no_sleep) -> None:
        """The container name is shell-quoted."""
        executor = MagicMock()
        executor.run.return_value = "x"
        prober = ReadinessProber(settle_delay=0, sleep=no_sleep)

        prober.wait_for_service_log(executor, "root", "h", "vpn; rm -rf /")

        command = executor.run.call_args.args[2]
        assert "'vpn; rm -rf /'" in command
        assert no_sleep.calls == []
