"""dovpn - Deploy a personal IKEv2 VPN to DigitalOcean in one command.

dovpn creates a droplet running a strongSwan VPN and a Pi-hole DNS filter,
waits for it to come up, downloads the generated certificates and renders
client profiles for Apple devices and the Android strongSwan app.

Main features:
- Forward-only deployment lifecycle with bounded waits
- Client profiles for macOS/iOS and Android
- Optional installation of the profile on the local Mac
"""

__version__ = "0.1.0"

from dovpn.deploy.orchestrator import Deployment, create  # noqa: E402
from dovpn.lib.errors import ConfigError, DeploymentError, DoVPNError  # noqa: E402
from dovpn.models.deployment import DeploymentStatus, DeploymentSummary  # noqa: E402

__all__ = [
    "__version__",
    "ConfigError",
    "Deployment",
    "DeploymentError",
    "DeploymentStatus",
    "DeploymentSummary",
    "DoVPNError",
    "create",
]
