"""Cloud provisioners for VPN hosts."""

from __future__ import annotations

from dovpn.deploy.provisioners.base import BaseProvisioner
from dovpn.models.deployment import DeploymentSettings


def create_provisioner(settings: DeploymentSettings) -> BaseProvisioner:
    """Create the provisioner for the given settings."""
    from dovpn.deploy.provisioners.digitalocean import DigitalOceanProvisioner

    return DigitalOceanProvisioner(
        settings.token,
        poll_attempts=settings.provision_attempts,
        poll_interval=settings.provision_interval,
    )


__all__ = ["BaseProvisioner", "create_provisioner"]
