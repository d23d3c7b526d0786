"""ANSI color helpers for deployment progress output."""

from dovpn.lib.ui.terminal import is_tty


class ANSIColors:
    """ANSI color escape codes used by the CLI.

    Attributes:
        GREEN: Completed steps and the final summary.
        RESET: Restore default terminal color.
    """

    GREEN = "\033[92m"
    RESET = "\033[0m"


def colorize(text: str, color: str, force_tty: bool | None = None) -> str:
    """Apply an ANSI color to text when writing to a terminal.

    Args:
        text: Text to colorize.
        color: ANSI color code to apply (e.g., ANSIColors.GREEN).
        force_tty: Override TTY detection (for testing). None uses auto-detection.

    Returns:
        Colorized text if in TTY mode, plain text otherwise.
    """
    use_colors = force_tty if force_tty is not None else is_tty()
    if not use_colors:
        return text
    return f"{color}{text}{ANSIColors.RESET}"
