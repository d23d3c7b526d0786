"""Spinner animation mixin for lifecycle progress lines."""

from typing import ClassVar


class SpinnerMixin:
    """Mixin providing a rotating braille spinner.

    Classes using this mixin must initialize ``_spinner_index = 0``.
    """

    SPINNER_CHARS: ClassVar[list[str]] = [
        "⠋",
        "⠙",
        "⠹",
        "⠸",
        "⠼",
        "⠴",
        "⠦",
        "⠧",
        "⠇",
        "⠏",
    ]
    _spinner_index: int

    def get_spinner_char(self) -> str:
        """Return the current spinner character and advance the rotation."""
        char = self.SPINNER_CHARS[self._spinner_index % len(self.SPINNER_CHARS)]
        self._spinner_index += 1
        return char
