"""Terminal detection utilities.

Lets the CLI decide between animated, colored progress output and plain
lines suitable for CI logs or redirected output.
"""

import sys


def is_tty() -> bool:
    """Check if stdout is connected to a terminal.

    Returns:
        True if stdout is a TTY (interactive terminal), False otherwise.
    """
    return sys.stdout.isatty()
