"""Deployment orchestration for VPN hosts.

A :class:`Deployment` drives one provisioning run from an API token to a
working VPN: create the machine, wait for it to come up, pull the generated
certificates, render client profiles and optionally install the profile on
this machine. Status only moves forward; a failed or finished deployment
cannot be run again.
"""

from __future__ import annotations

import functools
import logging
import random
import string
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from dovpn.config.defaults import (
    DEPLOYMENT_BASE_NAME,
    FILENAME_ANDROID_CONFIG,
    FILENAME_APPLE_CONFIG,
    NAME_SUFFIX_LENGTH,
)
from dovpn.config.validator import to_config_error
from dovpn.deploy.artifacts import (
    CA_CERT,
    PASSWORD,
    PRIVATE_KEY,
    SERVER_CERT,
    ArtifactPipeline,
    write_atomic,
)
from dovpn.deploy.convergence import PublicIPProbe, fetch_public_ip, wait_for_ip_change
from dovpn.deploy.genconfig import render_android_config, render_apple_config
from dovpn.deploy.local_apply import apply_profile
from dovpn.deploy.provisioners import BaseProvisioner, create_provisioner
from dovpn.deploy.readiness import ReadinessProber
from dovpn.deploy.remote import (
    ParamikoExecutor,
    RemoteExecutor,
    SSHKeyPair,
    generate_ssh_key_pair,
)
from dovpn.deploy.services import (
    ServiceDescriptor,
    default_services,
    generate_cloud_config,
)
from dovpn.lib.errors import (
    ArtifactFetchError,
    ConfigRenderError,
    DeploymentError,
    LocalApplyError,
    PublicIPError,
)
from dovpn.models.deployment import (
    DeploymentSettings,
    DeploymentSnapshot,
    DeploymentStatus,
    DeploymentSummary,
)

logger = logging.getLogger(__name__)

NAME_ALPHABET = string.ascii_lowercase + string.digits

StatusObserver = Callable[[DeploymentSnapshot], None]
ProfileApplier = Callable[[Path], None]

_default_rng = random.Random()


def generate_name(region: str, rng: random.Random | None = None) -> str:
    """Generate a deployment name such as ``dovpn-k3x9qa-nyc3``.

    Args:
        region: Region slug appended to the name
        rng: Random source (defaults to a process-wide generator)

    Returns:
        The generated name
    """
    source = rng or _default_rng
    suffix = "".join(source.choices(NAME_ALPHABET, k=NAME_SUFFIX_LENGTH))
    return f"{DEPLOYMENT_BASE_NAME}-{suffix}-{region}"


class Deployment:
    """One provisioning run of a VPN host.

    Build instances with :func:`create`, then call :meth:`run` once.

    Attributes:
        name: Generated deployment name
        settings: Resolved settings for this run
        machine_id: Provider machine identifier, once created
        firewall_id: Provider firewall identifier, once created
        machine_ip: Address used for SSH
        vpn_ip_address: Address clients connect to
        vpn_password: Passphrase of the client PKCS#12 container
        initial_public_ip: This machine's public IP before deploying
        final_public_ip: Public IP seen after the VPN was added (or empty)
        failed: True once a run raised an error
        error: Message of the error that failed the run
    """

    def __init__(
        self,
        *,
        name: str,
        settings: DeploymentSettings,
        provisioner: BaseProvisioner,
        executor: RemoteExecutor,
        prober: ReadinessProber,
        user_data: str,
        public_ip_probe: PublicIPProbe,
        profile_applier: ProfileApplier,
        sleep: Callable[[float], None] = time.sleep,
        on_status: StatusObserver | None = None,
    ) -> None:
        self.name = name
        self.settings = settings
        self.user_data = user_data
        self._provisioner = provisioner
        self._executor = executor
        self._prober = prober
        self._public_ip_probe = public_ip_probe
        self._profile_applier = profile_applier
        self._sleep = sleep
        self._on_status = on_status

        self._status = DeploymentStatus.PENDING_AUTH
        self.machine_id = ""
        self.firewall_id = ""
        self.machine_ip = ""
        self.vpn_ip_address = ""
        self.vpn_password = ""
        self.initial_public_ip = ""
        self.final_public_ip = ""
        self.failed = False
        self.error = ""

    @property
    def region(self) -> str:
        return self.settings.region

    @property
    def status(self) -> DeploymentStatus:
        return self._status

    def snapshot(self) -> DeploymentSnapshot:
        """Return an immutable view of the current progress."""
        return DeploymentSnapshot(
            name=self.name,
            region=self.region,
            status=self._status,
            ip_address=self.vpn_ip_address,
            initial_ip=self.initial_public_ip,
            final_ip=self.final_public_ip,
        )

    def _advance(self, status: DeploymentStatus) -> None:
        if status.order <= self._status.order:
            raise DeploymentError(
                operation="status",
                message=f"cannot move from '{self._status.value}' to '{status.value}'",
            )
        self._status = status
        logger.debug(f"Deployment {self.name}: {status.value}")
        if self._on_status is not None:
            self._on_status(self.snapshot())

    def run(self) -> DeploymentSummary:
        """Execute every lifecycle step in order.

        Returns:
            Summary with the VPN address, passphrase and local file paths

        Raises:
            DeploymentError: If this deployment already ran, or any fatal step
                failed. The status is left at the step that failed.
        """
        if self._status is not DeploymentStatus.PENDING_AUTH or self.failed:
            raise DeploymentError(
                operation="run",
                message=(
                    f"Deployment {self.name} cannot be run again "
                    f"(status: {self._status.value}"
                    + (", failed" if self.failed else "")
                    + ")"
                ),
            )

        try:
            return self._execute()
        except Exception as e:
            self.failed = True
            self.error = str(e)
            logger.error(f"Deployment {self.name} failed at '{self._status.value}': {e}")
            raise

    def _execute(self) -> DeploymentSummary:
        settings = self.settings

        self.initial_public_ip = self._probe_public_ip()
        logger.info(f"Initial public IP is {self.initial_public_ip or 'unknown'}")

        self._advance(DeploymentStatus.PROVISIONING)
        self.machine_id = self._provisioner.create_machine(
            name=self.name,
            region=settings.region,
            size=settings.size,
            user_data=self.user_data,
            image=settings.image,
        )
        self.machine_ip = self._provisioner.wait_for_address(self.machine_id)
        self.vpn_ip_address = self.machine_ip

        self._advance(DeploymentStatus.CREATING_FIREWALL)
        self.firewall_id = self._provisioner.create_firewall(
            name=self.name, machine_id=self.machine_id
        )

        self._advance(DeploymentStatus.WAITING_FOR_SSH)
        logger.info("Waiting for SSH to start...")
        self._prober.wait_for_ssh(self.machine_ip)

        self._advance(DeploymentStatus.WAITING_FOR_SERVICE)
        logger.info("Waiting for VPN to become active...")
        self._prober.wait_for_service_log(
            self._executor, settings.ssh_user, self.machine_ip, settings.workload_name
        )

        self._advance(DeploymentStatus.RETRIEVING_ARTIFACTS)
        pipeline = ArtifactPipeline(
            self._executor,
            user=settings.ssh_user,
            host=self.machine_ip,
            workload=settings.workload_name,
            config_dir=settings.config_dir,
            deployment_name=self.name,
        )
        contents = pipeline.retrieve()
        try:
            self.vpn_password = contents[PASSWORD.name].decode("utf-8").strip()
        except UnicodeDecodeError as e:
            raise ArtifactFetchError(
                PASSWORD.name, f"password file is not valid UTF-8: {e}"
            ) from e

        self._advance(DeploymentStatus.RENDERING_CONFIGS)
        apple_path = settings.config_dir / FILENAME_APPLE_CONFIG.format(name=self.name)
        android_path = settings.config_dir / FILENAME_ANDROID_CONFIG.format(
            name=self.name
        )
        apple = render_apple_config(
            self.vpn_ip_address,
            self.name,
            self.vpn_password,
            contents[PRIVATE_KEY.name],
            contents[CA_CERT.name],
            contents[SERVER_CERT.name],
        )
        android = render_android_config(
            self.vpn_ip_address,
            self.name,
            contents[PRIVATE_KEY.name],
            contents[CA_CERT.name],
        )
        self._write_profile("apple", apple_path, apple)
        self._write_profile("android", android_path, android)

        if settings.auto_configure:
            self._advance(DeploymentStatus.ADDING_VPN)
            try:
                self._profile_applier(apple_path)
            except LocalApplyError as e:
                logger.warning(f"Could not add VPN profile: {e.message}")

            self._advance(DeploymentStatus.WAITING_FOR_IP_CHANGE)
            self.final_public_ip = wait_for_ip_change(
                self.initial_public_ip,
                self._public_ip_probe,
                attempts=settings.ip_change_attempts,
                interval=settings.ip_change_interval,
                sleep=self._sleep,
            )

        self._advance(DeploymentStatus.DONE)

        summary = DeploymentSummary(
            name=self.name,
            status=self._status,
            vpn_ip_address=self.vpn_ip_address,
            vpn_password=self.vpn_password,
            apple_config=apple_path,
            android_config=android_path,
            private_key=pipeline.path_for(PRIVATE_KEY),
            ca_cert=pipeline.path_for(CA_CERT),
            server_cert=pipeline.path_for(SERVER_CERT),
            initial_public_ip=self.initial_public_ip,
            final_public_ip=self.final_public_ip,
        )
        self._log_summary(summary)
        return summary

    def _probe_public_ip(self) -> str:
        try:
            return self._public_ip_probe()
        except PublicIPError as e:
            logger.warning(e.message)
            return ""

    def _write_profile(self, target: str, path: Path, content: str) -> None:
        try:
            write_atomic(path, content.encode("utf-8"))
        except OSError as e:
            raise ConfigRenderError(target, f"could not write {path}: {e}") from e
        logger.info(f"Saved {target} profile to {path}")

    def _log_summary(self, summary: DeploymentSummary) -> None:
        logger.info(
            "\n".join(
                [
                    "#" * 60,
                    f"VPN deployment {summary.name} complete",
                    f"  VPN IP address:      {summary.vpn_ip_address}",
                    f"  VPN password:        {summary.vpn_password}",
                    f"  Apple profile:       {summary.apple_config}",
                    f"  Android profile:     {summary.android_config}",
                    f"  Client certificate:  {summary.private_key}",
                    f"  CA certificate:      {summary.ca_cert}",
                    f"  Server certificate:  {summary.server_cert}",
                    "#" * 60,
                ]
            )
        )


def create(
    token: str,
    region: str,
    auto_configure: bool = False,
    *,
    settings: DeploymentSettings | None = None,
    config_dir: Path | None = None,
    provisioner: BaseProvisioner | None = None,
    executor: RemoteExecutor | None = None,
    prober: ReadinessProber | None = None,
    key_pair: SSHKeyPair | None = None,
    services: Sequence[ServiceDescriptor] | None = None,
    rng: random.Random | None = None,
    public_ip_probe: PublicIPProbe | None = None,
    profile_applier: ProfileApplier | None = None,
    sleep: Callable[[float], None] = time.sleep,
    on_status: StatusObserver | None = None,
) -> Deployment:
    """Prepare a deployment: name it, generate its SSH identity, render user-data.

    Every collaborator can be supplied explicitly; anything omitted is built
    from the settings.

    Args:
        token: Provisioning API token
        region: Region slug
        auto_configure: Add the VPN profile to this machine after deploying
        settings: Base settings (token, region and auto_configure override it)
        config_dir: Override for the local config directory
        provisioner: Cloud provisioner
        executor: Remote executor for the VPN host
        prober: Readiness prober
        key_pair: SSH identity (generated when omitted)
        services: Services to install (defaults to system, VPN and DNS filter)
        rng: Random source for the name suffix
        public_ip_probe: Callable returning this machine's public IP
        profile_applier: Callable installing a profile locally
        sleep: Sleep function used for every wait
        on_status: Called with a snapshot after every status change

    Returns:
        A Deployment in status ``pending auth``

    Raises:
        ConfigError: If the settings are invalid
        RemoteExecutionError: If the SSH identity cannot be generated
        ConfigRenderError: If any service fragment fails to render
    """
    overrides = {"token": token, "region": region, "auto_configure": auto_configure}
    if config_dir is not None:
        overrides["config_dir"] = config_dir
    base = settings.model_dump() if settings is not None else {}
    try:
        resolved = DeploymentSettings(**{**base, **overrides})
    except PydanticValidationError as e:
        raise to_config_error(e, "deployment arguments") from e

    name = generate_name(resolved.region, rng)
    identity = key_pair or generate_ssh_key_pair(comment=name)
    user_data = generate_cloud_config(
        identity.public_key,
        default_services() if services is None else services,
        workload_name=resolved.workload_name,
    )
    logger.debug(f"Rendered user-data for {name} ({len(user_data)} bytes)")

    if prober is None:
        prober = ReadinessProber(
            port_attempts=resolved.ssh_attempts,
            port_interval=resolved.ssh_interval,
            service_attempts=resolved.service_attempts,
            service_interval=resolved.service_interval,
            settle_delay=resolved.service_settle_delay,
            sleep=sleep,
        )
    if public_ip_probe is None:
        public_ip_probe = functools.partial(fetch_public_ip, resolved.public_ip_url)

    return Deployment(
        name=name,
        settings=resolved,
        provisioner=provisioner or create_provisioner(resolved),
        executor=executor or ParamikoExecutor(identity.private_key),
        prober=prober,
        user_data=user_data,
        public_ip_probe=public_ip_probe,
        profile_applier=profile_applier or apply_profile,
        sleep=sleep,
        on_status=on_status,
    )
