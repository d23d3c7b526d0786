"""Command-line interface for dovpn."""
