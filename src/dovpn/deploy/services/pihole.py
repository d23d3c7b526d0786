"""DNS ad-filtering container used as the VPN's resolver."""

from dovpn.deploy.services.base import ServiceDescriptor


class PiholeService(ServiceDescriptor):
    """Runs Pi-hole bound to the docker bridge address."""

    name = "pihole"
    template = """\
write_files:
  - path: /etc/systemd/system/pihole.service
    permissions: "0644"
    content: |
      [Unit]
      Description=Pi-hole DNS filter
      After=docker.service
      Requires=docker.service

      [Service]
      Restart=always
      ExecStartPre=-/usr/bin/docker rm -f pihole
      ExecStartPre=/usr/bin/docker pull {{ pihole_image }}
      ExecStart=/usr/bin/docker run --rm --name pihole -p 172.17.0.1:53:53/tcp -p 172.17.0.1:53:53/udp -e DNSMASQ_LISTENING=all {{ pihole_image }}
      ExecStop=/usr/bin/docker stop pihole

      [Install]
      WantedBy=multi-user.target
runcmd:
  - ["systemctl", "daemon-reload"]
  - ["systemctl", "enable", "--now", "pihole.service"]
"""
