"""Shared utilities for dovpn: errors, logging and terminal helpers."""
