"""
Configuration management for the SharePoint deduplicator.

Loads settings from YAML and environment variables using Pydantic.
"""

import os
from pathlib import Path
from typing import Optional, Tuple, Type

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    SettingsConfigDict,
    PydanticBaseSettingsSource
)


class ServerConfig(BaseModel):
    """Server-specific settings."""
    host: str = "0.0.0.0"
    port: int = 5080
    debug: bool = False
    log_level: str = "INFO"


# Define project root relative to this config file (sharepoint_dedup/config.py -> root/)
PROJECT_ROOT = Path(__file__).parent.parent.resolve()


class PathConfig(BaseModel):
    """Path-specific settings."""
    data_dir: Path = Path("data")
    audit_log_file: Path = Path("data/audit_logs.json")

    @model_validator(mode='after')
    def resolve_relative_paths(self):
        """Ensure all paths are absolute, resolving relative ones against PROJECT_ROOT."""
        for field_name in type(self).model_fields:
            value = getattr(self, field_name)
            if isinstance(value, Path) and not value.is_absolute():
                setattr(self, field_name, PROJECT_ROOT / value)
        return self


class AzureAdConfig(BaseModel):
    """App registration used for the client-credentials flow."""
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = ""
    authority_host: str = "https://login.microsoftonline.com"
    scope: str = "https://graph.microsoft.com/.default"

    def is_configured(self) -> bool:
        return bool(self.tenant_id and self.client_id and self.client_secret)


class GraphConfig(BaseModel):
    """Microsoft Graph transport settings."""
    base_url: str = "https://graph.microsoft.com/v1.0"
    timeout_seconds: float = 30.0
    max_retries: int = 5
    backoff_factor: float = 1.0
    page_size: int = 200


class ScannerConfig(BaseModel):
    """Scan behaviour settings."""
    # 10000 pages of ~200 items is roughly 2M items in a single folder
    max_pages_per_directory: int = Field(default=10000, ge=1)
    max_parallel_drives: int = Field(default=1, ge=1)


class RateLimitConfig(BaseModel):
    """API Rate limiting settings."""
    enabled: bool = True
    scan_limit: str = "10/minute"
    default_limit: str = "120/minute"


class Config(BaseSettings):
    """Global configuration object."""
    server: ServerConfig = ServerConfig()
    paths: PathConfig = PathConfig()
    azure_ad: AzureAdConfig = AzureAdConfig()
    graph: GraphConfig = GraphConfig()
    scanner: ScannerConfig = ScannerConfig()
    rate_limit: RateLimitConfig = RateLimitConfig()

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Reorder settings sources to prioritize environment variables over YAML."""
        return (
            env_settings,
            dotenv_settings,
            init_settings,  # YAML data passed via load() kwargs
            file_secret_settings,
        )

    @classmethod
    def load(cls, yaml_path: Optional[str] = None) -> "Config":
        """Load configuration from YAML and override with environment variables.

        Args:
            yaml_path: Path to the YAML configuration file. Falls back to
                ``SHAREPOINT_DEDUP_CONFIG`` and then to ``config.yaml`` next
                to this module.

        Returns:
            A populated Config instance.
        """
        if not yaml_path:
            yaml_path = os.environ.get("SHAREPOINT_DEDUP_CONFIG") or os.path.join(
                os.path.dirname(__file__), "config.yaml"
            )

        data = {}
        if os.path.exists(yaml_path):
            with open(yaml_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

        return cls(**data)


# Singleton instance for the application
settings = Config.load()
