"""Unit tests for the dovpn deploy CLI command.

Tests cover:
- Deploy command group help
- run: full lifecycle with faked collaborators, state recording, error exit codes
- status: listing and lookup of recorded deployments
- destroy: confirmation, provider calls and record update
"""

from __future__ import annotations

import random
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from dovpn.cli.commands.deploy import deploy
from dovpn.cli.main import main
from dovpn.deploy import orchestrator
from dovpn.deploy.readiness import ReadinessProber
from dovpn.deploy.state import get_state_path, load_state, update_deployment_record
from dovpn.lib.errors import ProvisioningError
from dovpn.models.deployment_state import DeploymentRecord


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI runner."""
    return CliRunner()


@pytest.fixture
def fake_create(provisioner, executor, key_pair, no_sleep):
    """Patch create() so runs use fake collaborators."""

    def _create(*args: Any, **kwargs: Any):
        kwargs.update(
            provisioner=provisioner,
            executor=executor,
            prober=MagicMock(spec=ReadinessProber),
            key_pair=key_pair,
            rng=random.Random(11),
            public_ip_probe=lambda: "1.2.3.4",
            profile_applier=MagicMock(),
            sleep=no_sleep,
        )
        return orchestrator.create(*args, **kwargs)

    with patch("dovpn.cli.commands.deploy.create", side_effect=_create) as mocked:
        yield mocked


def _seed_record(config_dir: Path, **overrides: Any) -> DeploymentRecord:
    values: dict[str, Any] = {
        "name": "dovpn-abc123-nyc3",
        "region": "nyc3",
        "machine_id": "1234",
        "firewall_id": "fw-1",
        "ip_address": "203.0.113.10",
        "status": "done",
    }
    values.update(overrides)
    return update_deployment_record(
        get_state_path(config_dir), DeploymentRecord(**values)
    )


@pytest.mark.unit
class TestDeployGroup:
    """Tests for the deploy command group."""

    def test_shows_help_without_subcommand(self, runner: CliRunner) -> None:
        """Invoking the group alone prints help."""
        result = runner.invoke(deploy, [])
        assert result.exit_code == 0
        assert "run" in result.output
        assert "destroy" in result.output

    def test_main_version(self, runner: CliRunner) -> None:
        """The top-level command reports its version."""
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "dovpn" in result.output


@pytest.mark.unit
class TestRunCommand:
    """Tests for `dovpn deploy run`."""

    def test_successful_run(
        self, runner: CliRunner, fake_create, isolated_env, config_dir: Path
    ) -> None:
        """A run prints progress and the summary, and records the deployment."""
        result = runner.invoke(
            deploy,
            ["run", "--region", "nyc3", "--token", "t", "--config-dir", str(config_dir)],
        )

        assert result.exit_code == 0, result.output
        assert "waiting for ssh" in result.output
        assert "VPN Deployed!" in result.output
        assert "203.0.113.10" in result.output
        assert "s3cret-pass" in result.output

        state = load_state(get_state_path(config_dir))
        (record,) = state.deployments.values()
        assert record.status == "done"
        assert record.machine_id == "1234"
        assert record.firewall_id == "fw-1"
        assert record.error is None

    def test_quiet_prints_address_only(
        self, runner: CliRunner, fake_create, isolated_env, config_dir: Path
    ) -> None:
        """--quiet prints just the VPN address."""
        result = runner.invoke(
            deploy,
            ["run", "--region", "nyc3", "--token", "t", "--config-dir", str(config_dir), "-q"],
        )

        assert result.exit_code == 0
        assert result.output.strip() == "203.0.113.10"

    def test_token_from_environment(
        self, runner: CliRunner, fake_create, isolated_env, config_dir: Path
    ) -> None:
        """The token may come from DIGITALOCEAN_TOKEN."""
        isolated_env.setenv("DIGITALOCEAN_TOKEN", "env-token")

        result = runner.invoke(
            deploy, ["run", "--region", "nyc3", "--config-dir", str(config_dir)]
        )

        assert result.exit_code == 0
        assert fake_create.call_args.args[0] == "env-token"

    def test_missing_token_exits_2(
        self, runner: CliRunner, fake_create, isolated_env, config_dir: Path
    ) -> None:
        """A configuration error exits with code 2."""
        result = runner.invoke(
            deploy, ["run", "--region", "nyc3", "--config-dir", str(config_dir)]
        )

        assert result.exit_code == 2
        assert "Configuration error" in result.output
        fake_create.assert_not_called()

    def test_deployment_failure_exits_3_and_records_error(
        self,
        runner: CliRunner,
        fake_create,
        provisioner,
        isolated_env,
        config_dir: Path,
    ) -> None:
        """A failed run exits with code 3 and records where it stopped."""
        provisioner.errors["create_firewall"] = ProvisioningError(
            "limit reached", operation="firewall"
        )

        result = runner.invoke(
            deploy,
            ["run", "--region", "nyc3", "--token", "t", "--config-dir", str(config_dir)],
        )

        assert result.exit_code == 3
        assert "firewall failed" in result.output
        (record,) = load_state(get_state_path(config_dir)).deployments.values()
        assert record.status == "creating firewall"
        assert record.machine_id == "1234"
        assert "limit reached" in (record.error or "")


@pytest.mark.unit
class TestStatusCommand:
    """Tests for `dovpn deploy status`."""

    def test_no_records(self, runner: CliRunner, config_dir: Path) -> None:
        """An empty state file prints a hint."""
        result = runner.invoke(deploy, ["status", "--config-dir", str(config_dir)])
        assert result.exit_code == 0
        assert "No deployments recorded" in result.output

    def test_lists_records(self, runner: CliRunner, config_dir: Path) -> None:
        """Recorded deployments are listed."""
        _seed_record(config_dir)
        _seed_record(config_dir, name="dovpn-zzz999-sfo2", region="sfo2", status="provisioning")

        result = runner.invoke(deploy, ["status", "--config-dir", str(config_dir)])

        assert result.exit_code == 0
        assert "dovpn-abc123-nyc3" in result.output
        assert "dovpn-zzz999-sfo2" in result.output
        assert "provisioning" in result.output

    def test_quiet_output(self, runner: CliRunner, config_dir: Path) -> None:
        """--quiet prints tab-separated name and status."""
        _seed_record(config_dir)

        result = runner.invoke(
            deploy, ["status", "dovpn-abc123-nyc3", "--config-dir", str(config_dir), "-q"]
        )

        assert result.exit_code == 0
        assert result.output == "dovpn-abc123-nyc3\tdone\n"

    def test_unknown_name_exits_2(self, runner: CliRunner, config_dir: Path) -> None:
        """Unknown names are a configuration error."""
        result = runner.invoke(
            deploy, ["status", "nope", "--config-dir", str(config_dir)]
        )
        assert result.exit_code == 2


@pytest.mark.unit
class TestDestroyCommand:
    """Tests for `dovpn deploy destroy`."""

    def test_destroys_firewall_then_machine(
        self, runner: CliRunner, provisioner, isolated_env, config_dir: Path
    ) -> None:
        """Both resources are deleted and the record is marked deleted."""
        _seed_record(config_dir)

        with patch(
            "dovpn.cli.commands.deploy.create_provisioner", return_value=provisioner
        ):
            result = runner.invoke(
                deploy,
                [
                    "destroy",
                    "dovpn-abc123-nyc3",
                    "--token",
                    "t",
                    "--config-dir",
                    str(config_dir),
                    "--force",
                ],
            )

        assert result.exit_code == 0, result.output
        assert provisioner.calls == [
            ("destroy_firewall", {"firewall_id": "fw-1"}),
            ("destroy_machine", {"machine_id": "1234"}),
        ]
        record = load_state(get_state_path(config_dir)).deployments["dovpn-abc123-nyc3"]
        assert record.status == "deleted"

    def test_failed_machine_delete_can_be_retried(
        self, runner: CliRunner, provisioner, isolated_env, config_dir: Path
    ) -> None:
        """A rerun after a failed machine delete skips the deleted firewall."""
        _seed_record(config_dir)
        args = [
            "destroy",
            "dovpn-abc123-nyc3",
            "--token",
            "t",
            "--config-dir",
            str(config_dir),
            "--force",
        ]
        provisioner.errors["destroy_machine"] = ProvisioningError(
            "droplet is locked", operation="destroy"
        )

        with patch(
            "dovpn.cli.commands.deploy.create_provisioner", return_value=provisioner
        ):
            first = runner.invoke(deploy, args)

            record = load_state(get_state_path(config_dir)).deployments[
                "dovpn-abc123-nyc3"
            ]
            assert first.exit_code == 3
            assert record.firewall_id is None
            assert record.machine_id == "1234"

            provisioner.calls.clear()
            provisioner.errors = {
                "destroy_firewall": ProvisioningError("404 not found", "destroy")
            }
            second = runner.invoke(deploy, args)

        assert second.exit_code == 0, second.output
        assert provisioner.calls == [("destroy_machine", {"machine_id": "1234"})]
        record = load_state(get_state_path(config_dir)).deployments["dovpn-abc123-nyc3"]
        assert record.machine_id is None
        assert record.status == "deleted"

    def test_confirmation_declined(
        self, runner: CliRunner, provisioner, isolated_env, config_dir: Path
    ) -> None:
        """Declining the prompt aborts without touching the provider."""
        _seed_record(config_dir)

        with patch(
            "dovpn.cli.commands.deploy.create_provisioner", return_value=provisioner
        ):
            result = runner.invoke(
                deploy,
                ["destroy", "dovpn-abc123-nyc3", "--config-dir", str(config_dir)],
                input="n\n",
            )

        assert result.exit_code == 0
        assert "Destroy aborted" in result.output
        assert provisioner.calls == []

    def test_unknown_name_exits_2(self, runner: CliRunner, config_dir: Path) -> None:
        """Destroying an unknown deployment is a configuration error."""
        result = runner.invoke(
            deploy, ["destroy", "nope", "--config-dir", str(config_dir), "--force"]
        )
        assert result.exit_code == 2


@pytest.mark.unit
class TestConfigDirResolution:
    """All commands agree on where deployment records live."""

    def test_config_file_directory_shared_by_commands(
        self,
        runner: CliRunner,
        fake_create,
        provisioner,
        isolated_env,
        tmp_path: Path,
    ) -> None:
        """config_dir from config.yaml is used by run, status and destroy."""
        home_dir = tmp_path / "home" / ".dovpn"
        home_dir.mkdir(parents=True)
        custom = tmp_path / "custom"
        (home_dir / "config.yaml").write_text(f"config_dir: {custom}\n")
        isolated_env.setattr("dovpn.config.loader.DEFAULT_CONFIG_DIR", home_dir)

        result = runner.invoke(deploy, ["run", "--region", "nyc3", "--token", "t"])

        assert result.exit_code == 0, result.output
        (record,) = load_state(get_state_path(custom)).deployments.values()
        assert not get_state_path(home_dir).exists()

        status = runner.invoke(deploy, ["status", record.name, "-q"])
        assert status.exit_code == 0, status.output
        assert status.output == f"{record.name}\tdone\n"

        with patch(
            "dovpn.cli.commands.deploy.create_provisioner", return_value=provisioner
        ):
            destroyed = runner.invoke(
                deploy, ["destroy", record.name, "--token", "t", "--force", "-q"]
            )

        assert destroyed.exit_code == 0, destroyed.output
        assert provisioner.operations[-2:] == ["destroy_firewall", "destroy_machine"]
