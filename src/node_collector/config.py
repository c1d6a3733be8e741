"""Configuration and environment for the node collector."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Collector settings loaded from environment and .env."""

    model_config = SettingsConfigDict(
        env_prefix="NODE_COLLECTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Kubernetes
    kubeconfig: Path | None = Field(
        default=None,
        description="Path to kubeconfig; uses KUBECONFIG env or default location if unset",
    )
    context: str | None = Field(default=None, description="Kubernetes context to use")
    namespace: str = Field(
        default="node-collector",
        description="Namespace the collector jobs run in; created on demand",
    )

    # Job template
    template_name: str = Field(default="node-collector", description="Name of the job template")
    template_dir: Path | None = Field(
        default=None,
        description="Directory searched for <name>.yaml before the bundled templates",
    )
    image_ref: str | None = Field(default=None, description="Override for the collector image")
    service_account: str | None = Field(default=None, description="Service account for applied jobs")
    node_config: bool = Field(
        default=False,
        description="Pass --node to the workload and provision RBAC to read node configuration",
    )

    # Timing
    wait_timeout_seconds: float = Field(
        default=300.0,
        ge=0.0,
        description="How long to wait for the job to finish (0 waits forever)",
    )
    job_timeout_seconds: float = Field(
        default=0.0,
        ge=0.0,
        description="Job activeDeadlineSeconds (0 leaves the template value)",
    )
    poll_interval_seconds: float = Field(default=2.0, gt=0.0, le=60.0, description="Job status poll interval")
    pod_lookup_timeout_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="How long to wait for the job's pod to appear before reading logs",
    )


def get_settings() -> Settings:
    """Return validated settings instance."""
    return Settings()
