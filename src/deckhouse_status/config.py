"""Configuration and environment for deckhouse-status."""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment and .env."""

    model_config = SettingsConfigDict(
        env_prefix="DECKHOUSE_STATUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Kubernetes
    kubeconfig: Path | None = Field(
        default=None,
        description="Path to kubeconfig; uses KUBECONFIG env or default location if unset",
    )
    context: str | None = Field(default=None, description="Kubernetes context to use")
    namespace: str = Field(default="d8-system", description="Namespace of the Deckhouse deployment")
    deployment: str = Field(default="deckhouse", description="Deployment restarted by watch-build --restart")
    pod_selector: str = Field(default="app=deckhouse", description="Label selector for Deckhouse pods")
    registry_secret: str = Field(
        default="deckhouse-registry",
        description="Secret holding .dockerconfigjson with registry credentials",
    )

    # GitHub
    github_owner: str = Field(default="deckhouse")
    github_repo: str = Field(default="deckhouse")
    github_api_url: str = Field(default="https://api.github.com")
    github_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DECKHOUSE_STATUS_GITHUB_TOKEN", "GITHUB_TOKEN"),
        description="Optional token; anonymous access works for public repos but has a low rate limit",
    )

    # Timing (seconds)
    timeout: float = Field(default=15, gt=0, description="Deadline for the status command")
    watch_timeout: float = Field(default=3600, gt=0, description="Deadline for watch-build")
    poll_interval: float = Field(default=10, gt=0, description="watch-build poll interval")
    restart_timeout: float = Field(default=15, gt=0, description="Deadline for the post-build restart")
    cluster_timeout: float = Field(default=15, gt=0, description="Deadline for the watch target lookup")

    # Display
    tz: str = Field(default="Europe/Moscow", description="IANA zone name or numeric offset (+3, -5)")
    no_color: bool = False
    no_emoji: bool = False


def get_settings() -> Settings:
    """Return validated settings instance."""
    return Settings()
