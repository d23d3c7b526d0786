"""Retrieval of generated secrets and certificates from the VPN host."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from dovpn.config.defaults import (
    FILENAME_CA_CERT,
    FILENAME_PRIVATE_KEY,
    FILENAME_SERVER_CERT,
    REMOTE_CA_CERT_PATH,
    REMOTE_PASSWORD_PATH,
    REMOTE_PRIVATE_KEY_PATH,
    REMOTE_SERVER_CERT_PATH,
)
from dovpn.deploy.remote import RemoteExecutor
from dovpn.lib.errors import ArtifactFetchError, DeploymentError, RemoteExecutionError
from dovpn.models.deployment import Artifact

logger = logging.getLogger(__name__)

PASSWORD = Artifact(name="password", remote_path=REMOTE_PASSWORD_PATH)
PRIVATE_KEY = Artifact(
    name="private_key",
    remote_path=REMOTE_PRIVATE_KEY_PATH,
    filename_template=FILENAME_PRIVATE_KEY,
)
CA_CERT = Artifact(
    name="ca_cert",
    remote_path=REMOTE_CA_CERT_PATH,
    filename_template=FILENAME_CA_CERT,
)
SERVER_CERT = Artifact(
    name="server_cert",
    remote_path=REMOTE_SERVER_CERT_PATH,
    filename_template=FILENAME_SERVER_CERT,
)

# Retrieval order
ARTIFACTS: tuple[Artifact, ...] = (PASSWORD, PRIVATE_KEY, CA_CERT, SERVER_CERT)


def ensure_config_dir(config_dir: Path) -> Path:
    """Create the config directory if it does not exist.

    Raises:
        DeploymentError: If the directory cannot be created
    """
    try:
        config_dir.mkdir(parents=True, exist_ok=True, mode=0o700)
    except OSError as e:
        raise DeploymentError(
            operation="artifacts",
            message=f"Failed to create config directory {config_dir}: {e}",
        ) from e
    return config_dir


def write_atomic(path: Path, content: bytes) -> None:
    """Write ``content`` to ``path`` so readers never see a partial file.

    The data goes to a temporary file in the same directory which is then
    renamed over the destination.

    Raises:
        OSError: If writing or renaming fails
    """
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
        os.replace(tmp_name, path)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class ArtifactPipeline:
    """Fetches artifacts in order and persists the ones that have a filename.

    Attributes:
        executor: Remote executor used to read files from the container
        user: Remote user name
        host: VPN host address
        workload: Container name holding the artifacts
        config_dir: Local destination directory
        deployment_name: Stem for local filenames
    """

    def __init__(
        self,
        executor: RemoteExecutor,
        *,
        user: str,
        host: str,
        workload: str,
        config_dir: Path,
        deployment_name: str,
    ) -> None:
        self.executor = executor
        self.user = user
        self.host = host
        self.workload = workload
        self.config_dir = config_dir
        self.deployment_name = deployment_name

    def path_for(self, artifact: Artifact) -> Path | None:
        """Return the local path for an artifact, or None if kept in memory."""
        filename = artifact.local_filename(self.deployment_name)
        if filename is None:
            return None
        return self.config_dir / filename

    def retrieve(self, artifacts: tuple[Artifact, ...] = ARTIFACTS) -> dict[str, bytes]:
        """Fetch each artifact in order, writing persisted ones to disk.

        The first failure stops the pipeline; artifacts already written stay
        on disk and later ones are never fetched.

        Args:
            artifacts: Ordered artifacts to retrieve

        Returns:
            Mapping of artifact name to raw content

        Raises:
            ArtifactFetchError: Naming the first artifact that failed
            DeploymentError: If the config directory cannot be created
        """
        ensure_config_dir(self.config_dir)
        contents: dict[str, bytes] = {}

        for artifact in artifacts:
            logger.debug(f"Retrieving {artifact.name} from {artifact.remote_path}")
            try:
                content = self.executor.fetch_file_from_workload(
                    self.user, self.host, self.workload, artifact.remote_path
                )
            except RemoteExecutionError as e:
                raise ArtifactFetchError(artifact.name, e.message) from e

            path = self.path_for(artifact)
            if path is not None:
                try:
                    write_atomic(path, content)
                except OSError as e:
                    raise ArtifactFetchError(
                        artifact.name, f"could not write {path}: {e}"
                    ) from e
                logger.info(f"Saved {artifact.name} to {path}")

            contents[artifact.name] = content

        return contents
