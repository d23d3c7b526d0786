"""Public IP lookup and detection of traffic moving onto the VPN."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import requests

from dovpn.config.defaults import DEFAULT_PUBLIC_IP_URL
from dovpn.deploy.readiness import poll
from dovpn.lib.errors import NetworkTimeoutError, PublicIPError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

PublicIPProbe = Callable[[], str]


def fetch_public_ip(
    url: str = DEFAULT_PUBLIC_IP_URL,
    *,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """Return this machine's public IP address as seen by ``url``.

    Args:
        url: Endpoint answering with the caller's address as plain text
        session: Optional requests session, left open for the caller
        timeout: Request timeout in seconds

    Returns:
        The address with surrounding whitespace removed

    Raises:
        PublicIPError: If the request fails or the body is empty
    """
    if session is None:
        with requests.Session() as owned:
            return fetch_public_ip(url, session=owned, timeout=timeout)

    try:
        response = session.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise PublicIPError(url, e) from e

    address = response.text.strip()
    if not address:
        raise PublicIPError(url, ValueError("empty response body"))
    return address


def wait_for_ip_change(
    initial: str,
    probe: PublicIPProbe,
    *,
    attempts: int,
    interval: float,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Probe the public IP until it differs from ``initial``.

    Sleeps ``interval`` before each probe so the new route has time to come
    up. ``probe`` is called exactly once per attempt. Probe failures count
    as "no change yet".

    Args:
        initial: Address observed before the VPN was added
        probe: Callable returning the current public IP
        attempts: Maximum number of probes
        interval: Seconds to sleep before each probe
        sleep: Sleep function (injectable for tests)

    Returns:
        The first non-empty address different from ``initial``, or an empty
        string if none was seen
    """

    def changed() -> str | None:
        try:
            current = probe()
        except PublicIPError as e:
            logger.debug(f"Public IP probe failed: {e.message}")
            return None
        if current and current != initial:
            return current
        logger.debug(f"Public IP unchanged ({current})")
        return None

    # poll sleeps between attempts; this covers the one before the first
    sleep(interval)
    try:
        current = poll(
            changed,
            attempts=attempts,
            interval=interval,
            operation="waiting for ip address change",
            sleep=sleep,
        )
    except NetworkTimeoutError:
        logger.warning(f"Public IP did not change after {attempts} probes")
        return ""

    logger.info(f"Public IP changed from {initial or 'unknown'} to {current}")
    return current
