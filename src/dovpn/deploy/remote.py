"""Remote command execution on the VPN host over SSH."""

from __future__ import annotations

import io
import logging
import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass

import paramiko
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from dovpn.config.defaults import SSH_PORT
from dovpn.lib.errors import RemoteExecutionError

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 30.0


@dataclass(frozen=True)
class SSHKeyPair:
    """Locally generated SSH identity.

    Attributes:
        private_key: Private key in OpenSSH PEM format
        public_key: Public key in ``authorized_keys`` format
    """

    private_key: str
    public_key: str


def generate_ssh_key_pair(comment: str = "") -> SSHKeyPair:
    """Generate a new Ed25519 SSH key pair.

    Args:
        comment: Optional comment appended to the public key

    Returns:
        SSHKeyPair with OpenSSH-encoded keys

    Raises:
        RemoteExecutionError: If key generation or serialization fails
    """
    try:
        private_key = ed25519.Ed25519PrivateKey.generate()
        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.OpenSSH,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("utf-8")
        public_openssh = (
            private_key.public_key()
            .public_bytes(
                encoding=serialization.Encoding.OpenSSH,
                format=serialization.PublicFormat.OpenSSH,
            )
            .decode("utf-8")
        )
    except (ValueError, TypeError) as e:
        raise RemoteExecutionError(
            host="localhost",
            message=f"Failed to generate SSH key pair: {e}",
            operation="create",
        ) from e

    if comment:
        public_openssh = f"{public_openssh} {comment}"
    logger.debug("Generated Ed25519 SSH key pair")
    return SSHKeyPair(private_key=private_pem, public_key=public_openssh)


class RemoteExecutor(ABC):
    """Runs commands on a remote host."""

    @abstractmethod
    def run(self, user: str, host: str, command: str) -> str:
        """Run a shell command and return its standard output.

        Args:
            user: Remote user name
            host: Remote host address
            command: Shell command line

        Returns:
            Decoded standard output

        Raises:
            RemoteExecutionError: If the session fails or the command exits nonzero
        """

    @abstractmethod
    def fetch_file_from_workload(
        self, user: str, host: str, workload: str, remote_path: str
    ) -> bytes:
        """Read a file from inside a running container on the remote host.

        Args:
            user: Remote user name
            host: Remote host address
            workload: Container name
            remote_path: Absolute path inside the container

        Returns:
            Raw file content

        Raises:
            RemoteExecutionError: If the file cannot be read
        """


class ParamikoExecutor(RemoteExecutor):
    """RemoteExecutor backed by paramiko, authenticating with an Ed25519 key.

    Each call opens its own connection and closes it afterwards.
    """

    def __init__(
        self,
        private_key: str,
        *,
        port: int = SSH_PORT,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ) -> None:
        """Initialize the executor.

        Args:
            private_key: OpenSSH PEM private key matching the host's authorized key
            port: SSH port
            timeout: Connect and command timeout in seconds
        """
        self._private_key = private_key
        self.port = port
        self.timeout = timeout

    def _load_key(self) -> paramiko.PKey:
        return paramiko.Ed25519Key.from_private_key(io.StringIO(self._private_key))

    def _exec(self, user: str, host: str, command: str) -> bytes:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                hostname=host,
                port=self.port,
                username=user,
                pkey=self._load_key(),
                timeout=self.timeout,
                allow_agent=False,
                look_for_keys=False,
            )
            logger.debug(f"Running on {user}@{host}: {command}")
            _stdin, stdout, stderr = client.exec_command(command, timeout=self.timeout)
            output = stdout.read()
            exit_code = stdout.channel.recv_exit_status()
            if exit_code != 0:
                error_output = stderr.read().decode("utf-8", errors="replace").strip()
                raise RemoteExecutionError(
                    host=host,
                    message=(
                        f"Command exited with status {exit_code}: {command}"
                        + (f" ({error_output})" if error_output else "")
                    ),
                )
            return output
        except (paramiko.SSHException, OSError) as e:
            raise RemoteExecutionError(
                host=host, message=f"SSH session failed: {e}"
            ) from e
        finally:
            client.close()

    def run(self, user: str, host: str, command: str) -> str:
        """Run a shell command and return its decoded standard output."""
        return self._exec(user, host, command).decode("utf-8", errors="replace")

    def fetch_file_from_workload(
        self, user: str, host: str, workload: str, remote_path: str
    ) -> bytes:
        """Read a container file with ``docker exec <workload> cat <path>``."""
        command = f"docker exec {shlex.quote(workload)} cat {shlex.quote(remote_path)}"
        return self._exec(user, host, command)
