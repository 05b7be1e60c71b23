"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from ytchat.config import load_config


def test_defaults_without_file(tmp_path):
    config = load_config(tmp_path / "missing.yaml", environ={})

    assert config.api_key is None
    assert config.oauth_port == 8080
    assert config.default_poll_interval_ms == 5000
    assert config.max_backoff_sec == 60.0
    assert config.min_retry_delay_sec == 1.0


def test_load_yaml(tmp_path):
    """Test loading settings from a YAML file."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "api_key: file-key\n"
        "oauth_port: 9090\n"
        "max_backoff_sec: 30\n"
    )

    config = load_config(config_file, environ={})

    assert config.api_key == "file-key"
    assert config.oauth_port == 9090
    assert config.max_backoff_sec == 30.0


def test_environment_overrides_file(tmp_path):
    """Test that credentials from the environment take precedence."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("api_key: file-key\nclient_id: file-client\n")

    config = load_config(
        config_file,
        environ={"YT_API_KEY": "env-key", "YT_CLIENT_SECRET": "env-secret", "YT_CLIENT_ID": ""},
    )

    assert config.api_key == "env-key"
    assert config.client_secret == "env-secret"
    assert config.client_id == "file-client"


def test_empty_file(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("")

    assert load_config(config_file, environ={}).oauth_port == 8080


def test_invalid_values(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("oauth_port: 70000\n")

    with pytest.raises(ValidationError):
        load_config(config_file, environ={})
