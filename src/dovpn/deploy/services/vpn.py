"""IKEv2 VPN server container."""

from dovpn.deploy.services.base import ServiceDescriptor


class VPNService(ServiceDescriptor):
    """Runs the strongSwan container that generates certificates on first boot.

    The container writes the client PKCS#12 container, its passphrase and
    the CA and server certificates under ``/etc/ipsec.d`` when it starts.
    """

    name = "vpn"
    template = """\
write_files:
  - path: /etc/systemd/system/{{ workload_name }}.service
    permissions: "0644"
    content: |
      [Unit]
      Description={{ workload_name }} IKEv2 VPN server
      After=docker.service pihole.service
      Requires=docker.service

      [Service]
      Restart=always
      ExecStartPre=-/usr/bin/docker rm -f {{ workload_name }}
      ExecStartPre=/usr/bin/docker pull {{ vpn_image }}
      ExecStart=/usr/bin/docker run --rm --name {{ workload_name }} --privileged --net host -e VPN_DNS=172.17.0.1 -v {{ workload_name }}-ipsec:/etc/ipsec.d {{ vpn_image }}
      ExecStop=/usr/bin/docker stop {{ workload_name }}

      [Install]
      WantedBy=multi-user.target
runcmd:
  - ["systemctl", "daemon-reload"]
  - ["systemctl", "enable", "--now", "{{ workload_name }}.service"]
"""
