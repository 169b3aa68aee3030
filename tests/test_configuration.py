"""Unit tests for configuration loading."""
import os

import pytest

from voice_interviewer.services.configuration_manager import ConfigurationManager, TimingConfig
from voice_interviewer.utils.exceptions import ConfigurationError


def write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_without_files(tmp_path):
    manager = ConfigurationManager(str(tmp_path), env_file=str(tmp_path / ".env"))
    manager.initialize()

    config = manager.get_config()
    assert config.timing.response_timeout == 12.0
    assert config.timing.thinking_grace == 20.0
    assert config.interview.default_domain == "frontend"
    assert manager.get_enabled_llm_providers() == []


def test_yaml_sections_are_merged(tmp_path):
    write(tmp_path / "config.yaml", """
app:
  name: "Rehearsal"
interview:
  default_domain: backend
  context_window: 3
timing:
  response_timeout: 8
logging:
  level: DEBUG
  format: json
""")
    manager = ConfigurationManager(str(tmp_path), env_file=str(tmp_path / ".env"))
    manager.initialize()

    assert manager.get_setting("app_name") == "Rehearsal"
    assert manager.get_setting("interview.default_domain") == "backend"
    assert manager.get_setting("timing.response_timeout") == 8.0
    assert manager.get_setting("timing.thinking_grace") == 20.0
    assert manager.get_setting("timing.missing", "fallback") == "fallback"

    logging_kwargs = manager.get_logging_config()
    assert logging_kwargs["level"] == "DEBUG"
    assert logging_kwargs["structured"] is True


def test_provider_api_key_is_resolved_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("TEST_ADVISOR_KEY", "sk-test")
    write(tmp_path / "providers.yaml", """
providers:
  primary:
    enabled: true
    api_key: "${TEST_ADVISOR_KEY}"
    model: gpt-4o-mini
  missing_key:
    enabled: true
    api_key: "${TEST_UNSET_KEY}"
    model: gpt-4o-mini
  disabled:
    enabled: false
    api_key: "plain"
    model: gpt-4o-mini
""")
    monkeypatch.delenv("TEST_UNSET_KEY", raising=False)
    manager = ConfigurationManager(str(tmp_path), env_file=str(tmp_path / ".env"))
    manager.initialize()

    providers = manager.get_enabled_llm_providers()
    assert [p.name for p in providers] == ["primary"]
    assert providers[0].api_key == "sk-test"


def test_env_file_is_loaded(tmp_path, monkeypatch):
    monkeypatch.delenv("DOTENV_ADVISOR_KEY", raising=False)
    write(tmp_path / ".env", "DOTENV_ADVISOR_KEY=from-dotenv\n")
    write(tmp_path / "providers.yaml", """
providers:
  primary:
    enabled: true
    api_key: "${DOTENV_ADVISOR_KEY}"
    model: gpt-4o-mini
""")
    manager = ConfigurationManager(str(tmp_path), env_file=str(tmp_path / ".env"))
    try:
        manager.initialize()
        assert manager.get_enabled_llm_providers()[0].api_key == "from-dotenv"
    finally:
        os.environ.pop("DOTENV_ADVISOR_KEY", None)


def test_zero_response_timeout_is_rejected(tmp_path):
    write(tmp_path / "config.yaml", "timing:\n  response_timeout: 0\n")
    manager = ConfigurationManager(str(tmp_path), env_file=str(tmp_path / ".env"))
    with pytest.raises(ConfigurationError):
        manager.initialize()


def test_negative_timing_is_invalid():
    with pytest.raises(ValueError):
        TimingConfig(thinking_grace=-1)
