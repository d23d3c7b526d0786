"""Entry point for the dovpn command-line interface."""

import click

from dovpn import __version__
from dovpn.cli.commands.deploy import deploy


@click.group()
@click.version_option(version=__version__, prog_name="dovpn")
def main() -> None:
    """dovpn - one-command personal VPN on DigitalOcean.

    Creates a droplet running an IKEv2 VPN with DNS ad filtering, then
    downloads ready-to-import client profiles for macOS, iOS and Android.
    """


main.add_command(deploy)


if __name__ == "__main__":  # pragma: no cover
    main()
