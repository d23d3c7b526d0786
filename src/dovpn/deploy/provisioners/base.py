"""Base interface for cloud provisioners."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseProvisioner(ABC):
    """Abstract base class for cloud provisioners."""

    @abstractmethod
    def create_machine(
        self,
        *,
        name: str,
        region: str,
        size: str,
        user_data: str,
        image: str,
    ) -> str:
        """Create a virtual machine and wait until the provider reports it active.

        Args:
            name: Machine name.
            region: Provider region slug.
            size: Machine size slug.
            user_data: Cloud-init user-data for first boot.
            image: Machine image slug.

        Returns:
            Provider-assigned machine identifier.

        Raises:
            ProvisioningError: If the provider rejects the request.
            NetworkTimeoutError: If the machine never became active.
        """

    @abstractmethod
    def wait_for_address(self, machine_id: str) -> str:
        """Wait until the machine has a public IPv4 address and return it.

        Args:
            machine_id: Provider-assigned machine identifier.

        Raises:
            ProvisioningError: If the lookup fails.
            NetworkTimeoutError: If no address was assigned in time.
        """

    @abstractmethod
    def create_firewall(self, *, name: str, machine_id: str) -> str:
        """Create a firewall admitting SSH and IKE traffic to the machine.

        Args:
            name: Firewall name.
            machine_id: Machine the firewall applies to.

        Returns:
            Provider-assigned firewall identifier.

        Raises:
            ProvisioningError: If the provider rejects the request.
        """

    @abstractmethod
    def destroy_machine(self, machine_id: str) -> None:
        """Delete a machine.

        Raises:
            ProvisioningError: If the delete fails.
        """

    @abstractmethod
    def destroy_firewall(self, firewall_id: str) -> None:
        """Delete a firewall.

        Raises:
            ProvisioningError: If the delete fails.
        """
