"""Data models for dovpn deployments."""

from dovpn.models.deployment import (
    Artifact,
    DeploymentSettings,
    DeploymentSnapshot,
    DeploymentStatus,
    DeploymentSummary,
)
from dovpn.models.deployment_state import DeploymentRecord, DeploymentState

__all__ = [
    "Artifact",
    "DeploymentRecord",
    "DeploymentSettings",
    "DeploymentSnapshot",
    "DeploymentState",
    "DeploymentStatus",
    "DeploymentSummary",
]
