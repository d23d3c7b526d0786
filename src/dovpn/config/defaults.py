"""Built-in defaults and fixed constants for dovpn deployments."""

from pathlib import Path

# Deployment naming
DEPLOYMENT_BASE_NAME = "dovpn"
NAME_SUFFIX_LENGTH = 6

# Local storage
DEFAULT_CONFIG_DIR = Path.home() / ".dovpn"
STATE_FILENAME = "deployments.json"
USER_CONFIG_FILENAMES = ("config.yml", "config.yaml")

# Local filenames, stemmed by the deployment name
FILENAME_APPLE_CONFIG = "{name}.apple.mobileconfig"
FILENAME_ANDROID_CONFIG = "{name}.android.sswan"
FILENAME_PRIVATE_KEY = "{name}.client.cert.p12"
FILENAME_CA_CERT = "{name}.ca.cert.pem"
FILENAME_SERVER_CERT = "{name}.server.cert.pem"

# Paths inside the VPN container
REMOTE_PASSWORD_PATH = "/etc/ipsec.d/client.cert.p12.password"
REMOTE_PRIVATE_KEY_PATH = "/etc/ipsec.d/client.cert.p12"
REMOTE_CA_CERT_PATH = "/etc/ipsec.d/cacerts/ca.cert.pem"
REMOTE_SERVER_CERT_PATH = "/etc/ipsec.d/certs/server.cert.pem"

# Network
SSH_PORT = 22
# (protocol, port) pairs opened inbound on the VPN host
FIREWALL_INBOUND_RULES: tuple[tuple[str, str], ...] = (
    ("tcp", "22"),
    ("udp", "500"),
    ("udp", "4500"),
)

# Machine and workload
DEFAULT_SIZE = "s-1vcpu-512mb-10gb"
DEFAULT_IMAGE = "docker-20-04"
DEFAULT_SSH_USER = "root"
DEFAULT_WORKLOAD_NAME = "dosxvpn"

# Polling bounds (attempts, seconds)
DEFAULT_PROVISION_ATTEMPTS = 60
DEFAULT_PROVISION_INTERVAL = 5.0
DEFAULT_PORT_ATTEMPTS = 15
DEFAULT_PORT_INTERVAL = 5.0
DEFAULT_SERVICE_ATTEMPTS = 60
DEFAULT_SERVICE_INTERVAL = 2.0
DEFAULT_SETTLE_DELAY = 5.0
DEFAULT_IP_CHANGE_ATTEMPTS = 10
DEFAULT_IP_CHANGE_INTERVAL = 5.0

# Public IP lookup
DEFAULT_PUBLIC_IP_URL = "http://checkip.amazonaws.com/"

# Container images run on the VPN host
VPN_IMAGE = "dosxvpn/strongswan:latest"
PIHOLE_IMAGE = "pihole/pihole:latest"

# Environment variable to settings field mapping
ENV_VAR_MAP: dict[str, str] = {
    "token": "DIGITALOCEAN_TOKEN",
    "region": "DOVPN_REGION",
    "auto_configure": "DOVPN_AUTO_CONFIGURE",
    "size": "DOVPN_SIZE",
    "image": "DOVPN_IMAGE",
    "ssh_user": "DOVPN_SSH_USER",
    "config_dir": "DOVPN_CONFIG_DIR",
    "public_ip_url": "DOVPN_PUBLIC_IP_URL",
}
