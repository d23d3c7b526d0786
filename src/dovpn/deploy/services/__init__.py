"""Services installed on the VPN host through cloud-init user-data."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import yaml

from dovpn.config.defaults import DEFAULT_WORKLOAD_NAME, PIHOLE_IMAGE, VPN_IMAGE
from dovpn.deploy.services.base import ServiceDescriptor
from dovpn.deploy.services.pihole import PiholeService
from dovpn.deploy.services.system import SystemService
from dovpn.deploy.services.vpn import VPNService
from dovpn.lib.errors import ConfigRenderError

logger = logging.getLogger(__name__)

CLOUD_CONFIG_HEADER = "#cloud-config\n"


def default_services() -> list[ServiceDescriptor]:
    """Return the services every VPN host runs, in install order."""
    return [SystemService(), VPNService(), PiholeService()]


def _merge_fragment(
    merged: dict[str, Any], fragment: Mapping[str, Any], service: str
) -> None:
    for key, value in fragment.items():
        if key not in merged:
            merged[key] = list(value) if isinstance(value, list) else value
        elif isinstance(merged[key], list) and isinstance(value, list):
            merged[key].extend(value)
        elif merged[key] != value:
            raise ConfigRenderError(
                f"user-data ({service})",
                f"conflicting value for '{key}': {merged[key]!r} != {value!r}",
            )


def generate_cloud_config(
    authorized_key: str,
    services: Sequence[ServiceDescriptor],
    *,
    workload_name: str = DEFAULT_WORKLOAD_NAME,
    vpn_image: str = VPN_IMAGE,
    pihole_image: str = PIHOLE_IMAGE,
) -> str:
    """Render the machine user-data from every service's fragment.

    List-valued keys (``write_files``, ``runcmd``, ...) are concatenated in
    service order. Scalar keys must agree across services.

    Args:
        authorized_key: Public key allowed to log in over SSH
        services: Services to install, in order
        workload_name: Container name of the VPN server
        vpn_image: VPN server container image
        pihole_image: DNS filter container image

    Returns:
        A ``#cloud-config`` document

    Raises:
        ConfigRenderError: If any fragment fails to render or is not a
            YAML mapping
    """
    context = {
        "authorized_key": authorized_key,
        "workload_name": workload_name,
        "vpn_image": vpn_image,
        "pihole_image": pihole_image,
    }
    merged: dict[str, Any] = {}

    for service in services:
        rendered = service.render(context)
        try:
            fragment = yaml.safe_load(rendered)
        except yaml.YAMLError as e:
            raise ConfigRenderError(f"user-data ({service.name})", str(e)) from e
        if fragment is None:
            continue
        if not isinstance(fragment, dict):
            raise ConfigRenderError(
                f"user-data ({service.name})",
                f"expected a mapping, got {type(fragment).__name__}",
            )
        logger.debug(f"Adding {service.name} service to user-data")
        _merge_fragment(merged, fragment, service.name)

    return CLOUD_CONFIG_HEADER + yaml.safe_dump(
        merged, default_flow_style=False, sort_keys=False
    )


__all__ = [
    "PiholeService",
    "ServiceDescriptor",
    "SystemService",
    "VPNService",
    "default_services",
    "generate_cloud_config",
]
