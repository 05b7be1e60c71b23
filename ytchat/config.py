"""Configuration management."""

import os
from pathlib import Path
from typing import Mapping, Optional

import yaml

from ytchat.models import Config

# Environment variables overriding credentials from the config file
ENV_OVERRIDES = {
    "YT_API_KEY": "api_key",
    "YT_CLIENT_ID": "client_id",
    "YT_CLIENT_SECRET": "client_secret",
}


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """Load configuration from YAML file, then apply environment overrides."""
    if config_path is None:
        config_path = Path("config.yaml")
    if environ is None:
        environ = os.environ

    data = {}
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

    for env_name, field in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            data[field] = value

    return Config(**data)
