"""Terminal helpers for CLI progress display.

- TTY detection for adaptive output formatting
- Spinner animation for lifecycle transitions
- ANSI color support with graceful degradation
"""

from dovpn.lib.ui.colors import ANSIColors, colorize
from dovpn.lib.ui.spinner import SpinnerMixin
from dovpn.lib.ui.terminal import is_tty

__all__ = [
    "ANSIColors",
    "SpinnerMixin",
    "colorize",
    "is_tty",
]
