"""Client configuration profiles for connecting to a deployed VPN.

Two formats are produced:

- An Apple configuration profile (``.mobileconfig``) for macOS and iOS,
  bundling the client PKCS#12 container, the CA and server certificates,
  and an IKEv2 VPN payload.
- An Android strongSwan profile (``.sswan``), a JSON document for the
  strongSwan VPN client app.

Rendering is pure: the same inputs always produce byte-identical output.
Payload UUIDs are derived from the inputs with ``uuid5`` rather than drawn
at random.
"""

import base64
import json
import uuid

from jinja2 import StrictUndefined, Template, TemplateError

from dovpn.lib.errors import ConfigRenderError

PROFILE_NAMESPACE = uuid.UUID("6f1d4a5e-2b1c-4b6e-9d0a-3c7e8f2a1b90")
PROFILE_IDENTIFIER_PREFIX = "com.dovpn"

APPLE_PROFILE_TEMPLATE = """\
<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
  <key>PayloadContent</key>
  <array>
    <dict>
      <key>PayloadType</key>
      <string>com.apple.security.pkcs12</string>
      <key>PayloadIdentifier</key>
      <string>{{ prefix }}.{{ name | e }}.client</string>
      <key>PayloadUUID</key>
      <string>{{ uuids.client }}</string>
      <key>PayloadDisplayName</key>
      <string>{{ name | e }} client certificate</string>
      <key>PayloadVersion</key>
      <integer>1</integer>
      <key>Password</key>
      <string>{{ passphrase | e }}</string>
      <key>PayloadContent</key>
      <data>{{ private_key }}</data>
    </dict>
    <dict>
      <key>PayloadType</key>
      <string>com.apple.security.root</string>
      <key>PayloadIdentifier</key>
      <string>{{ prefix }}.{{ name | e }}.ca</string>
      <key>PayloadUUID</key>
      <string>{{ uuids.ca }}</string>
      <key>PayloadDisplayName</key>
      <string>{{ name | e }} certificate authority</string>
      <key>PayloadVersion</key>
      <integer>1</integer>
      <key>PayloadContent</key>
      <data>{{ ca_cert }}</data>
    </dict>
    <dict>
      <key>PayloadType</key>
      <string>com.apple.security.pem</string>
      <key>PayloadIdentifier</key>
      <string>{{ prefix }}.{{ name | e }}.server</string>
      <key>PayloadUUID</key>
      <string>{{ uuids.server }}</string>
      <key>PayloadDisplayName</key>
      <string>{{ name | e }} server certificate</string>
      <key>PayloadVersion</key>
      <integer>1</integer>
      <key>PayloadContent</key>
      <data>{{ server_cert }}</data>
    </dict>
    <dict>
      <key>PayloadType</key>
      <string>com.apple.vpn.managed</string>
      <key>PayloadIdentifier</key>
      <string>{{ prefix }}.{{ name | e }}.vpn</string>
      <key>PayloadUUID</key>
      <string>{{ uuids.vpn }}</string>
      <key>PayloadDisplayName</key>
      <string>{{ name | e }}</string>
      <key>PayloadVersion</key>
      <integer>1</integer>
      <key>UserDefinedName</key>
      <string>{{ name | e }}</string>
      <key>VPNType</key>
      <string>IKEv2</string>
      <key>IKEv2</key>
      <dict>
        <key>RemoteAddress</key>
        <string>{{ server_address | e }}</string>
        <key>RemoteIdentifier</key>
        <string>{{ server_address | e }}</string>
        <key>LocalIdentifier</key>
        <string>{{ name | e }}</string>
        <key>AuthenticationMethod</key>
        <string>Certificate</string>
        <key>PayloadCertificateUUID</key>
        <string>{{ uuids.client }}</string>
        <key>ServerCertificateIssuerCommonName</key>
        <string>{{ name | e }}</string>
        <key>OnDemandEnabled</key>
        <integer>1</integer>
        <key>OnDemandRules</key>
        <array>
          <dict>
            <key>Action</key>
            <string>Connect</string>
          </dict>
        </array>
      </dict>
    </dict>
  </array>
  <key>PayloadDisplayName</key>
  <string>{{ name | e }} VPN</string>
  <key>PayloadIdentifier</key>
  <string>{{ prefix }}.{{ name | e }}</string>
  <key>PayloadUUID</key>
  <string>{{ uuids.profile }}</string>
  <key>PayloadType</key>
  <string>Configuration</string>
  <key>PayloadVersion</key>
  <integer>1</integer>
</dict>
</plist>
"""


def _require(target: str, **values: str) -> None:
    for field, value in values.items():
        if not value:
            raise ConfigRenderError(target, f"{field} must not be empty")


def _encode(material: bytes | str) -> str:
    if isinstance(material, str):
        material = material.encode("utf-8")
    return base64.b64encode(material).decode("ascii")


def _payload_uuid(server_address: str, name: str, payload: str) -> str:
    return str(uuid.uuid5(PROFILE_NAMESPACE, f"{name}/{server_address}/{payload}"))


def render_apple_config(
    server_address: str,
    name: str,
    passphrase: str,
    private_key: bytes,
    ca_cert: bytes | str,
    server_cert: bytes | str,
) -> str:
    """Render an Apple configuration profile for the VPN.

    Args:
        server_address: VPN server address
        name: Deployment name, used for display names and identifiers
        passphrase: Passphrase protecting the PKCS#12 container
        private_key: Client PKCS#12 container
        ca_cert: CA certificate (PEM)
        server_cert: Server certificate (PEM)

    Returns:
        The profile as an XML property list

    Raises:
        ConfigRenderError: If the address or name is empty, or rendering fails
    """
    _require("apple", server_address=server_address, name=name)

    uuids = {
        payload: _payload_uuid(server_address, name, payload)
        for payload in ("client", "ca", "server", "vpn", "profile")
    }
    try:
        return Template(APPLE_PROFILE_TEMPLATE, undefined=StrictUndefined).render(
            prefix=PROFILE_IDENTIFIER_PREFIX,
            name=name,
            server_address=server_address,
            passphrase=passphrase,
            private_key=_encode(private_key),
            ca_cert=_encode(ca_cert),
            server_cert=_encode(server_cert),
            uuids=uuids,
        )
    except TemplateError as e:
        raise ConfigRenderError("apple", str(e)) from e


def render_android_config(
    server_address: str,
    name: str,
    private_key: bytes,
    ca_cert: bytes | str,
) -> str:
    """Render a strongSwan profile for the Android client app.

    The app asks for the PKCS#12 passphrase on import, so it is not embedded.

    Args:
        server_address: VPN server address
        name: Deployment name
        private_key: Client PKCS#12 container
        ca_cert: CA certificate (PEM)

    Returns:
        The profile as a JSON document with sorted keys

    Raises:
        ConfigRenderError: If the address or name is empty
    """
    _require("android", server_address=server_address, name=name)

    profile = {
        "uuid": _payload_uuid(server_address, name, "android"),
        "name": name,
        "type": "ikev2-cert",
        "remote": {
            "addr": server_address,
            "id": server_address,
            "cert": _encode(ca_cert),
        },
        "local": {
            "id": name,
            "p12": _encode(private_key),
        },
    }
    return json.dumps(profile, indent=2, sort_keys=True) + "\n"
