"""Tests for AssistantConfig."""

from __future__ import annotations

from datetime import timedelta

import pytest

from ops_assistant.agent.assistant import DEFAULT_MODEL
from ops_assistant.config import AssistantConfig
from ops_assistant.exceptions import ConfigurationError
from ops_assistant.vultr.client import DEFAULT_API_URL

REQUIRED = {"SLACK_BOT_TOKEN": "xoxb-1", "VULTR_API_KEY": "key", "SLACK_SIGNING_SECRET": "secret"}


@pytest.mark.unit
class TestFromEnv:
    """Tests for AssistantConfig.from_env."""

    def test_defaults(self) -> None:
        config = AssistantConfig.from_env(REQUIRED)

        assert config.slack_bot_token == "xoxb-1"
        assert config.vultr_api_key == "key"
        assert config.vultr_api_url == DEFAULT_API_URL
        assert config.agent_model == DEFAULT_MODEL
        assert config.agent_max_steps == 3
        assert config.database_url is None
        assert config.run_retention == timedelta(hours=24)
        assert config.log_level == "INFO"
        assert config.purge_interval_seconds == 300.0
        assert config.api_token == ""
        assert not config.socket_mode

    def test_overrides(self) -> None:
        config = AssistantConfig.from_env(
            {
                **REQUIRED,
                "VULTR_API_URL": "https://vultr.test/v2",
                "OPS_AGENT_MODEL": "test",
                "AGENT_MAX_STEPS": "5",
                "DATABASE_URL": "sqlite+aiosqlite:///runs.db",
                "RUN_RETENTION_HOURS": "1.5",
                "LOG_LEVEL": "debug",
                "RUN_PURGE_INTERVAL_SECONDS": "60",
                "OPS_API_TOKEN": "api-secret",
            }
        )

        assert config.vultr_api_url == "https://vultr.test/v2"
        assert config.agent_model == "test"
        assert config.agent_max_steps == 5
        assert config.database_url == "sqlite+aiosqlite:///runs.db"
        assert config.run_retention == timedelta(minutes=90)
        assert config.log_level == "DEBUG"
        assert config.purge_interval_seconds == 60.0
        assert config.api_token == "api-secret"

    def test_socket_mode_needs_no_signing_secret(self) -> None:
        config = AssistantConfig.from_env({"SLACK_BOT_TOKEN": "xoxb-1", "VULTR_API_KEY": "key", "SLACK_APP_TOKEN": "xapp-1"})

        assert config.socket_mode
        assert config.slack_signing_secret == ""

    def test_missing_required(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            AssistantConfig.from_env({})

        assert exc_info.value.missing == ["SLACK_BOT_TOKEN", "VULTR_API_KEY", "SLACK_SIGNING_SECRET"]

    def test_empty_value_counts_as_missing(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            AssistantConfig.from_env({**REQUIRED, "VULTR_API_KEY": ""})

        assert exc_info.value.missing == ["VULTR_API_KEY"]

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("AGENT_MAX_STEPS", "many"),
            ("AGENT_MAX_STEPS", "0"),
            ("RUN_RETENTION_HOURS", "-1"),
            ("RUN_PURGE_INTERVAL_SECONDS", "0"),
        ],
    )
    def test_invalid_numbers(self, name: str, value: str) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            AssistantConfig.from_env({**REQUIRED, name: value})

        assert exc_info.value.missing == []
        assert exc_info.value.invalid == [name]

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name, value in REQUIRED.items():
            monkeypatch.setenv(name, value)
        monkeypatch.delenv("SLACK_APP_TOKEN", raising=False)

        config = AssistantConfig.from_env(use_dotenv=False)

        assert config.slack_signing_secret == "secret"
