# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for configuration loading
"""

import pytest

from flowrunner.core import config as config_module
from flowrunner.core.config import Config, load_config, reload_config
from flowrunner.core.errors import ConfigurationError


def test_missing_file_returns_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    config = load_config(str(tmp_path / "absent.yaml"))

    assert config == Config()
    assert config.llm_model == "gpt-4o-mini"
    assert config.llm_max_tokens == 4096
    assert config.parallel_execution is False


def test_loads_yaml(tmp_path, monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    path = tmp_path / "flowrunner.yaml"
    path.write_text(
        "llm:\n"
        "  model: gpt-4o\n"
        "  max_tokens: 1024\n"
        "execution:\n"
        "  parallel: true\n"
        "  strict_templates: true\n"
        "storage:\n"
        "  backend: file\n"
        "  executions_dir: /tmp/runs\n"
        "logging:\n"
        "  level: DEBUG\n"
        "  format: text\n"
    )

    config = load_config(str(path))

    assert config.llm_model == "gpt-4o"
    assert config.llm_max_tokens == 1024
    assert config.parallel_execution is True
    assert config.strict_templates is True
    assert config.storage_backend == "file"
    assert config.executions_dir == "/tmp/runs"
    assert config.log_level == "DEBUG"
    assert config.log_format == "text"


def test_log_level_env_override(tmp_path, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "WARNING")

    assert load_config(str(tmp_path / "absent.yaml")).log_level == "WARNING"


@pytest.mark.parametrize("content", [
    "storage:\n  backend: postgres\n",
    "llm:\n  max_tokens: -1\n",
    "logging:\n  format: xml\n",
    "llm:\n  model: 'gpt; rm -rf'\n",
    "llm: [unclosed\n",
    "- just\n- a list\n",
])
def test_invalid_config_raises(tmp_path, content):
    path = tmp_path / "bad.yaml"
    path.write_text(content)

    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_config_is_immutable():
    config = Config()

    with pytest.raises(Exception):
        config.llm_model = "other"


def test_reload_reads_env_path(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("execution:\n  parallel: true\n")
    monkeypatch.setenv("FLOWRUNNER_CONFIG_PATH", str(path))
    monkeypatch.setattr(config_module, "_config", None)

    try:
        assert reload_config().parallel_execution is True
    finally:
        monkeypatch.delenv("FLOWRUNNER_CONFIG_PATH")
        reload_config()
