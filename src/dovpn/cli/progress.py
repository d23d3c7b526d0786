"""Status line output for a running deployment."""

import click

from dovpn.lib.ui import ANSIColors, SpinnerMixin, colorize, is_tty
from dovpn.models.deployment import DeploymentSnapshot, DeploymentStatus


class DeploymentProgress(SpinnerMixin):
    """Prints one line per status transition.

    On a terminal each line gets a spinner character and the finished
    state is colored; otherwise lines are plain for log capture.
    """

    def __init__(self, force_tty: bool | None = None) -> None:
        self._spinner_index = 0
        self._tty = is_tty() if force_tty is None else force_tty
        self.history: list[DeploymentStatus] = []

    def __call__(self, snapshot: DeploymentSnapshot) -> None:
        self.history.append(snapshot.status)
        click.echo(self.format_line(snapshot))

    def format_line(self, snapshot: DeploymentSnapshot) -> str:
        """Format the progress line for a snapshot."""
        text = f"[{snapshot.name}] {snapshot.status.value}"
        if snapshot.ip_address:
            text += f" ({snapshot.ip_address})"

        if snapshot.status is DeploymentStatus.DONE:
            return colorize(f"✓ {text}", ANSIColors.GREEN, force_tty=self._tty)
        if not self._tty:
            return f"- {text}"
        return f"{self.get_spinner_char()} {text}"
