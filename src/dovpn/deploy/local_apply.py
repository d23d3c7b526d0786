"""Installing a VPN configuration profile on the local machine."""

import logging
import subprocess  # nosec B404
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from dovpn.lib.errors import LocalApplyError

logger = logging.getLogger(__name__)

PROFILES_TOOL = "/usr/bin/profiles"


def apply_profile(
    path: Path,
    *,
    runner: Callable[..., Any] = subprocess.run,
    platform: str | None = None,
) -> None:
    """Install a configuration profile into the local network settings.

    Only macOS is supported; the profile is handed to the ``profiles`` tool,
    which prompts the user for approval.

    Args:
        path: Path to the ``.mobileconfig`` profile
        runner: Process runner (injectable for tests)
        platform: Platform string (defaults to ``sys.platform``)

    Raises:
        LocalApplyError: On an unsupported platform, a missing profile, or a
            failing ``profiles`` invocation
    """
    current = platform or sys.platform
    if current != "darwin":
        raise LocalApplyError(
            str(path), f"adding profiles is only supported on macOS, not {current}"
        )
    if not path.exists():
        raise LocalApplyError(str(path), "profile file does not exist")

    logger.info(f"Adding VPN profile {path}")
    try:
        runner(
            [PROFILES_TOOL, "-I", "-F", str(path)],
            check=True,
            capture_output=True,
            text=True,
        )  # nosec B603
    except subprocess.CalledProcessError as e:
        detail = (e.stderr or "").strip() or f"exit status {e.returncode}"
        raise LocalApplyError(str(path), detail) from e
    except OSError as e:
        raise LocalApplyError(str(path), str(e)) from e
