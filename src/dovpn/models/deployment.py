"""Pydantic models for VPN deployments.

This module defines the lifecycle status values, the resolved deployment
settings, the artifact descriptors fetched from the VPN host, and the views
of a deployment handed to observers and callers.
"""

import re
from enum import Enum
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dovpn.config.defaults import (
    DEFAULT_CONFIG_DIR,
    DEFAULT_IMAGE,
    DEFAULT_IP_CHANGE_ATTEMPTS,
    DEFAULT_IP_CHANGE_INTERVAL,
    DEFAULT_PORT_ATTEMPTS,
    DEFAULT_PORT_INTERVAL,
    DEFAULT_PROVISION_ATTEMPTS,
    DEFAULT_PROVISION_INTERVAL,
    DEFAULT_PUBLIC_IP_URL,
    DEFAULT_SERVICE_ATTEMPTS,
    DEFAULT_SERVICE_INTERVAL,
    DEFAULT_SETTLE_DELAY,
    DEFAULT_SIZE,
    DEFAULT_SSH_USER,
    DEFAULT_WORKLOAD_NAME,
)


class DeploymentStatus(str, Enum):
    """Lifecycle status of a deployment, in the order it is reached."""

    PENDING_AUTH = "pending auth"
    PROVISIONING = "provisioning"
    CREATING_FIREWALL = "creating firewall"
    WAITING_FOR_SSH = "waiting for ssh"
    WAITING_FOR_SERVICE = "waiting for service"
    RETRIEVING_ARTIFACTS = "retrieving artifacts"
    RENDERING_CONFIGS = "rendering client configs"
    ADDING_VPN = "adding vpn to osx"
    WAITING_FOR_IP_CHANGE = "waiting for ip address change"
    DONE = "done"

    @property
    def order(self) -> int:
        """Position of this status in the lifecycle."""
        return _STATUS_ORDER.index(self)


_STATUS_ORDER: list[DeploymentStatus] = list(DeploymentStatus)


REGION_PATTERN = re.compile(r"^[a-z]{3}\d$")


class DeploymentSettings(BaseModel):
    """Resolved settings for a single deployment run.

    Attributes:
        region: Provider region slug (e.g. nyc3, sfo2)
        auto_configure: Add the VPN profile to this machine after deploying
        token: Provisioning API token
        size: Machine size slug
        image: Machine image slug
        ssh_user: Remote user for SSH sessions
        workload_name: Name of the VPN container on the remote host
        config_dir: Local directory receiving certificates and profiles
        provision_attempts: Polls while waiting for the machine to become active
        provision_interval: Seconds between provisioning polls
        ssh_attempts: Port probes before giving up on SSH
        ssh_interval: Seconds between port probes
        service_attempts: Log checks before giving up on the VPN service
        service_interval: Seconds between log checks
        service_settle_delay: Pause after the service logs, so secrets are written
        ip_change_attempts: Public IP probes after adding the VPN locally
        ip_change_interval: Seconds between public IP probes
        public_ip_url: Endpoint returning this machine's public IP as text
    """

    model_config = ConfigDict(extra="forbid")

    region: str = Field(..., description="Provider region slug")
    auto_configure: bool = Field(
        default=False, description="Add the VPN profile to the local OS"
    )
    token: str = Field(..., min_length=1, description="Provisioning API token")
    size: str = Field(default=DEFAULT_SIZE, description="Machine size slug")
    image: str = Field(default=DEFAULT_IMAGE, description="Machine image slug")
    ssh_user: str = Field(default=DEFAULT_SSH_USER, description="Remote SSH user")
    workload_name: str = Field(
        default=DEFAULT_WORKLOAD_NAME,
        description="VPN container name on the remote host",
    )
    config_dir: Path = Field(
        default=DEFAULT_CONFIG_DIR,
        description="Local directory for certificates and profiles",
    )
    provision_attempts: Annotated[int, Field(ge=1)] = Field(
        default=DEFAULT_PROVISION_ATTEMPTS,
        description="Polls while waiting for the machine",
    )
    provision_interval: Annotated[float, Field(ge=0)] = Field(
        default=DEFAULT_PROVISION_INTERVAL,
        description="Seconds between provisioning polls",
    )
    ssh_attempts: Annotated[int, Field(ge=1)] = Field(
        default=DEFAULT_PORT_ATTEMPTS,
        description="Port probes before giving up on SSH",
    )
    ssh_interval: Annotated[float, Field(ge=0)] = Field(
        default=DEFAULT_PORT_INTERVAL, description="Seconds between port probes"
    )
    service_attempts: Annotated[int, Field(ge=1)] = Field(
        default=DEFAULT_SERVICE_ATTEMPTS,
        description="Log checks before giving up on the VPN service",
    )
    service_interval: Annotated[float, Field(ge=0)] = Field(
        default=DEFAULT_SERVICE_INTERVAL, description="Seconds between log checks"
    )
    service_settle_delay: Annotated[float, Field(ge=0)] = Field(
        default=DEFAULT_SETTLE_DELAY,
        description="Pause after the service starts logging",
    )
    ip_change_attempts: Annotated[int, Field(ge=1)] = Field(
        default=DEFAULT_IP_CHANGE_ATTEMPTS,
        description="Public IP probes after adding the VPN",
    )
    ip_change_interval: Annotated[float, Field(ge=0)] = Field(
        default=DEFAULT_IP_CHANGE_INTERVAL,
        description="Seconds between public IP probes",
    )
    public_ip_url: str = Field(
        default=DEFAULT_PUBLIC_IP_URL,
        description="Endpoint returning the caller's public IP",
    )

    @field_validator("region")
    @classmethod
    def validate_region(cls, v: str) -> str:
        """Validate region slug format."""
        if not REGION_PATTERN.match(v):
            raise ValueError(
                f"Invalid region: {v}. Expected a slug such as 'nyc3' or 'sfo2'."
            )
        return v

    @field_validator("config_dir")
    @classmethod
    def expand_config_dir(cls, v: Path) -> Path:
        """Expand a leading ``~`` in the config directory."""
        return v.expanduser()


class Artifact(BaseModel):
    """A file generated on the VPN host and retrieved to local storage.

    Attributes:
        name: Short identifier used in logs and errors
        remote_path: Path of the file inside the VPN container
        filename_template: Local filename with a ``{name}`` placeholder, or
            None to keep the content in memory only
    """

    model_config = ConfigDict(frozen=True)

    name: str
    remote_path: str
    filename_template: str | None = None

    def local_filename(self, deployment_name: str) -> str | None:
        """Return the local filename for a deployment, if persisted."""
        if self.filename_template is None:
            return None
        return self.filename_template.format(name=deployment_name)


class DeploymentSnapshot(BaseModel):
    """Point-in-time view of a deployment handed to status observers."""

    model_config = ConfigDict(frozen=True)

    name: str
    region: str
    status: DeploymentStatus
    ip_address: str = Field(default="", description="VPN server address")
    initial_ip: str = Field(default="", description="Public IP before deploying")
    final_ip: str = Field(default="", description="Public IP after convergence")


class DeploymentSummary(BaseModel):
    """Everything a user needs after a successful deployment.

    Attributes:
        name: Deployment name
        status: Final lifecycle status
        vpn_ip_address: VPN server address
        vpn_password: Passphrase protecting the client private key container
        apple_config: Path to the Apple configuration profile
        android_config: Path to the Android strongSwan profile
        private_key: Path to the client private key container
        ca_cert: Path to the CA certificate
        server_cert: Path to the server certificate
        initial_public_ip: Public IP observed before deploying
        final_public_ip: Public IP observed after the VPN was added (or empty)
    """

    model_config = ConfigDict(frozen=True)

    name: str
    status: DeploymentStatus
    vpn_ip_address: str
    vpn_password: str
    apple_config: Path
    android_config: Path
    private_key: Path
    ca_cert: Path
    server_cert: Path
    initial_public_ip: str = ""
    final_public_ip: str = ""
