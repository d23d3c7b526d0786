"""Deployment state tracking helpers."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from dovpn.config.defaults import STATE_FILENAME
from dovpn.lib.errors import DeploymentError
from dovpn.models.deployment_state import DeploymentRecord, DeploymentState

STATE_VERSION = "1.0"


def get_state_path(config_dir: Path) -> Path:
    """Return the deployment state file path inside a config directory."""
    return config_dir / STATE_FILENAME


def load_state(state_path: Path) -> DeploymentState:
    """Load recorded deployments from disk.

    A missing or empty file yields an empty state.

    Raises:
        DeploymentError: If the file cannot be read or is malformed
    """
    if not state_path.exists():
        return DeploymentState(version=STATE_VERSION)

    try:
        content = state_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DeploymentError(
            operation="state",
            message=f"Failed to read deployment state at {state_path}: {exc}",
        ) from exc
    if not content.strip():
        return DeploymentState(version=STATE_VERSION)

    try:
        return DeploymentState.model_validate_json(content)
    except ValidationError as exc:
        raise DeploymentError(
            operation="state",
            message=f"Invalid deployment state format in {state_path}: {exc}",
        ) from exc


def save_state(state_path: Path, state: DeploymentState) -> None:
    """Persist recorded deployments to disk."""
    try:
        state_path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(state.model_dump(mode="json"), indent=2, sort_keys=True)
        state_path.write_text(payload, encoding="utf-8")
    except OSError as exc:
        raise DeploymentError(
            operation="state",
            message=f"Failed to write deployment state to {state_path}: {exc}",
        ) from exc


def get_deployment_record(state_path: Path, name: str) -> DeploymentRecord | None:
    """Return the record for a deployment name, if any."""
    return load_state(state_path).deployments.get(name)


def list_deployment_records(state_path: Path) -> list[DeploymentRecord]:
    """Return all records, oldest first."""
    records = list(load_state(state_path).deployments.values())
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(records, key=lambda r: r.created_at or epoch)


def update_deployment_record(
    state_path: Path, record: DeploymentRecord
) -> DeploymentRecord:
    """Insert or replace a record, keeping its original creation time."""
    state = load_state(state_path)
    existing = state.deployments.get(record.name)
    now = datetime.now(timezone.utc)

    created_at = record.created_at or (existing.created_at if existing else None) or now
    updated_record = record.model_copy(
        update={"created_at": created_at, "updated_at": now}
    )

    state.deployments[record.name] = updated_record
    save_state(state_path, state)
    return updated_record
