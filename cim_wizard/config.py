"""Configuration management for the cluster deployment wizard."""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging Settings
    log_level: str = "INFO"

    # Kubernetes Settings
    kubeconfig_path: Optional[str] = Field(
        default=None,
        description="Path to kubeconfig file (in-cluster config when unset)",
    )
    kube_context: Optional[str] = None
    default_namespace: str = "default"
    request_timeout_seconds: Optional[float] = Field(
        default=30.0,
        description="Per-request timeout forwarded to the Kubernetes client",
    )

    # Record Linking Settings
    reserved_agent_label_key: str = "agentclusterinstalls.agent-install.openshift.io/reserved-by"
    agent_selector_annotation_key: str = "agent-install.openshift.io/agent-selector"
    agent_location_label_key: str = "agent-install.openshift.io/location"
    pull_secret_name_prefix: str = "pullsecret-"

    # Console Settings
    console_base_path: str = "/k8s"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging for the wizard backend."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
