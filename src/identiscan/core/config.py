"""
Aggregator configuration.

Timeouts are expressed in seconds. API credentials default to the matching
environment variables so a bare ``AggregatorConfig()`` picks them up.
"""

import os
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..exceptions import ConfigError


def _env(name: str):
    return lambda: os.environ.get(name) or None


class AggregatorConfig(BaseModel):
    """Configuration for the scan engine"""

    # Timeouts
    default_timeout: float = Field(30.0, gt=0)   # Per adapter
    total_timeout: float = Field(120.0, gt=0)    # Whole scan

    # Concurrency
    max_concurrent_jobs: int = Field(10, ge=1)

    # HTTP retry logic
    max_retries: int = Field(3, ge=0)
    retry_delay: float = Field(1.0, ge=0)
    retry_backoff: float = Field(2.0, ge=1)

    # Caching
    cache_ttl: float = Field(3600.0, gt=0)
    enable_cache: bool = True

    # Results
    max_results_per_source: int = Field(50, ge=1)
    min_confidence_threshold: float = Field(0.1, ge=0, le=1)

    # Deduplication
    dedupe_fields: List[str] = Field(default_factory=lambda: ["url", "username", "email"])

    # Credentials
    github_token: Optional[str] = Field(default_factory=_env("GITHUB_TOKEN"))
    twitter_bearer_token: Optional[str] = Field(default_factory=_env("TWITTER_BEARER_TOKEN"))
    shodan_api_key: Optional[str] = Field(default_factory=_env("SHODAN_API_KEY"))
    hunter_api_key: Optional[str] = Field(default_factory=_env("HUNTER_API_KEY"))

    @classmethod
    def from_yaml(cls, path: Union[str, Path], **overrides) -> "AggregatorConfig":
        """
        Load configuration from a YAML file.

        Args:
            path: YAML file with a mapping of config fields
            **overrides: Values that take precedence over the file

        Raises:
            ConfigError: If the file is unreadable or fails validation
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        data.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid config in {path}: {e}") from e
