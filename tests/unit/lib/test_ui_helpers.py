"""Unit tests for terminal color and TTY helpers."""

from unittest.mock import patch

import pytest

from dovpn.lib.ui import ANSIColors, colorize, is_tty


@pytest.mark.unit
class TestColorize:
    """Tests for colorize."""

    def test_wraps_text_on_tty(self) -> None:
        """Color codes surround the text when forced to TTY mode."""
        assert colorize("ok", ANSIColors.GREEN, force_tty=True) == (
            f"{ANSIColors.GREEN}ok{ANSIColors.RESET}"
        )

    def test_plain_text_off_tty(self) -> None:
        """Plain text is returned when not on a terminal."""
        assert colorize("ok", ANSIColors.GREEN, force_tty=False) == "ok"

    def test_auto_detection(self) -> None:
        """Without an override, TTY detection decides."""
        with patch("dovpn.lib.ui.colors.is_tty", return_value=False):
            assert colorize("ok", ANSIColors.GREEN) == "ok"


@pytest.mark.unit
class TestIsTty:
    """Tests for is_tty."""

    @pytest.mark.parametrize("value", [True, False])
    def test_reflects_stdout(self, value: bool) -> None:
        """is_tty mirrors sys.stdout.isatty()."""
        with patch("sys.stdout.isatty", return_value=value):
            assert is_tty() is value
