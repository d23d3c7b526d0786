"""Base operating system layer: SSH access and package updates."""

from dovpn.deploy.services.base import ServiceDescriptor


class SystemService(ServiceDescriptor):
    """Authorizes the deployment's SSH key and keeps the host patched."""

    name = "system"
    template = """\
ssh_authorized_keys:
  - "{{ authorized_key }}"
package_update: true
package_upgrade: true
runcmd:
  - ["sysctl", "-w", "net.ipv4.ip_forward=1"]
"""
