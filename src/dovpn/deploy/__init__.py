"""dovpn deployment engine.

This package drives a VPN deployment end to end: provisioning the host,
waiting for SSH and the VPN service, fetching certificates and rendering
client profiles.
"""

from dovpn.deploy.orchestrator import Deployment, create, generate_name
from dovpn.deploy.readiness import ReadinessProber, poll

__all__ = [
    "Deployment",
    "ReadinessProber",
    "create",
    "generate_name",
    "poll",
]
