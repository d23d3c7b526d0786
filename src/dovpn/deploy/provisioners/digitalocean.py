"""DigitalOcean provisioner using the v2 REST API."""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Callable
from typing import Any

import requests
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import Timeout

from dovpn.config.defaults import (
    DEFAULT_PROVISION_ATTEMPTS,
    DEFAULT_PROVISION_INTERVAL,
    FIREWALL_INBOUND_RULES,
)
from dovpn.deploy.provisioners.base import BaseProvisioner
from dovpn.deploy.readiness import poll
from dovpn.lib.errors import ProvisioningError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.digitalocean.com/v2"
DEFAULT_TIMEOUT = 30.0
ANY_ADDRESS = {"addresses": ["0.0.0.0/0", "::/0"]}
MACHINE_TAG = "dovpn"


class DigitalOceanProvisioner(BaseProvisioner):
    """Creates droplets and cloud firewalls on DigitalOcean."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        poll_attempts: int = DEFAULT_PROVISION_ATTEMPTS,
        poll_interval: float = DEFAULT_PROVISION_INTERVAL,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the provisioner.

        Args:
            token: DigitalOcean API token
            base_url: API base URL
            timeout: Request timeout in seconds
            poll_attempts: Status polls while waiting for a droplet
            poll_interval: Seconds between status polls
            session: Optional preconfigured requests session
            sleep: Sleep function (injectable for tests)
        """
        if not token:
            raise ProvisioningError(
                "A DigitalOcean API token is required.", operation="auth"
            )
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            }
        )

    def create_machine(
        self,
        *,
        name: str,
        region: str,
        size: str,
        user_data: str,
        image: str,
    ) -> str:
        """Create a droplet and block until it is active."""
        logger.info(f"Creating droplet {name} in {region}")
        payload = {
            "name": name,
            "region": region,
            "size": size,
            "image": image,
            "user_data": user_data,
            "ipv6": False,
            "tags": [MACHINE_TAG],
        }
        data = self._request("POST", "/droplets", "provision", json=payload)
        droplet_id = str(self._require(data, "droplet", "provision")["id"])
        logger.debug(f"Droplet {name} created with id {droplet_id}")

        def is_active() -> bool:
            droplet = self._get_droplet(droplet_id)
            status = droplet.get("status")
            if status == "errored":
                raise ProvisioningError(f"Droplet {droplet_id} failed to start")
            return status == "active"

        poll(
            is_active,
            attempts=self.poll_attempts,
            interval=self.poll_interval,
            operation="provision",
            sleep=self._sleep,
            message=f"droplet {droplet_id} did not become active",
        )
        logger.info(f"Droplet {name} is active")
        return droplet_id

    def wait_for_address(self, machine_id: str) -> str:
        """Poll the droplet until it reports a public IPv4 address."""

        def public_address() -> str | None:
            droplet = self._get_droplet(machine_id)
            for network in droplet.get("networks", {}).get("v4", []):
                if network.get("type") == "public" and network.get("ip_address"):
                    return str(network["ip_address"])
            return None

        address = poll(
            public_address,
            attempts=self.poll_attempts,
            interval=self.poll_interval,
            operation="address",
            sleep=self._sleep,
            message=f"droplet {machine_id} was not assigned a public address",
        )
        logger.info(f"Droplet {machine_id} has address {address}")
        return address

    def create_firewall(self, *, name: str, machine_id: str) -> str:
        """Create a firewall admitting SSH and IKE, with unrestricted egress."""
        payload = {
            "name": name,
            "inbound_rules": [
                {"protocol": protocol, "ports": ports, "sources": ANY_ADDRESS}
                for protocol, ports in FIREWALL_INBOUND_RULES
            ],
            "outbound_rules": [
                {"protocol": "tcp", "ports": "all", "destinations": ANY_ADDRESS},
                {"protocol": "udp", "ports": "all", "destinations": ANY_ADDRESS},
                {"protocol": "icmp", "destinations": ANY_ADDRESS},
            ],
            "droplet_ids": [int(machine_id)],
        }
        data = self._request("POST", "/firewalls", "firewall", json=payload)
        firewall_id = str(self._require(data, "firewall", "firewall")["id"])
        logger.info(f"Created firewall {name} ({firewall_id})")
        return firewall_id

    def destroy_machine(self, machine_id: str) -> None:
        """Delete a droplet."""
        self._request("DELETE", f"/droplets/{machine_id}", "destroy")
        logger.info(f"Deleted droplet {machine_id}")

    def destroy_firewall(self, firewall_id: str) -> None:
        """Delete a firewall."""
        self._request("DELETE", f"/firewalls/{firewall_id}", "destroy")
        logger.info(f"Deleted firewall {firewall_id}")

    def _get_droplet(self, droplet_id: str) -> dict[str, Any]:
        data = self._request("GET", f"/droplets/{droplet_id}", "provision")
        return self._require(data, "droplet", "provision")

    @staticmethod
    def _require(data: dict[str, Any], key: str, operation: str) -> dict[str, Any]:
        value = data.get(key)
        if not isinstance(value, dict):
            raise ProvisioningError(
                f"Unexpected API response: missing '{key}'", operation=operation
            )
        return value

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Execute an API request with error handling.

        Args:
            method: HTTP method
            path: Path relative to the API base URL
            operation: Lifecycle step reported on failure
            json: Optional JSON body

        Returns:
            Decoded JSON body (empty for 204 responses)

        Raises:
            ProvisioningError: Connection issues or a non-2xx status code
        """
        url = f"{self.base_url}{path}"
        try:
            response = self._session.request(
                method=method,
                url=url,
                json=json,
                timeout=self.timeout,
            )
        except (Timeout, RequestsConnectionError) as e:
            raise ProvisioningError(
                f"Could not reach {self.base_url}: {e}", operation=operation
            ) from e

        if not response.ok:
            detail = None
            with contextlib.suppress(ValueError):
                detail = response.json().get("message")
            raise ProvisioningError(
                f"{method} {path} returned {response.status_code}"
                + (f": {detail}" if detail else ""),
                operation=operation,
            )

        if response.status_code == 204 or not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise ProvisioningError(
                f"Invalid JSON from {method} {path}: {e}", operation=operation
            ) from e
        return body if isinstance(body, dict) else {}
