"""Deployment state models for recorded deployments."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class DeploymentRecord(BaseModel):
    """Persisted record of one provisioning run."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Generated deployment name")
    region: str = Field(..., description="Provider region slug")
    machine_id: str | None = Field(
        default=None, description="Provider-assigned machine identifier"
    )
    firewall_id: str | None = Field(
        default=None, description="Provider-assigned firewall identifier"
    )
    ip_address: str | None = Field(default=None, description="VPN server address")
    status: str = Field(..., description="Last known lifecycle status")
    error: str | None = Field(
        default=None, description="Error message if the run failed"
    )
    created_at: datetime | None = Field(
        default=None, description="Initial deployment timestamp"
    )
    updated_at: datetime | None = Field(
        default=None, description="Last update timestamp"
    )


class DeploymentState(BaseModel):
    """Top-level deployment state stored on disk."""

    model_config = ConfigDict(extra="forbid")

    version: str = Field(default="1.0", description="State file version")
    deployments: dict[str, DeploymentRecord] = Field(
        default_factory=dict, description="Deployments keyed by deployment name"
    )
