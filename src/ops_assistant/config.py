"""Process configuration.

Settings come from environment variables, optionally loaded from a ``.env``
file in the working directory.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta

from dotenv import load_dotenv

from ops_assistant.agent.assistant import DEFAULT_MODEL
from ops_assistant.exceptions import ConfigurationError
from ops_assistant.vultr.client import DEFAULT_API_URL

__all__ = ["AssistantConfig"]


@dataclass
class AssistantConfig:
    """Configuration for the assistant process.

    Attributes:
        slack_bot_token: Bot token (``xoxb-``) used for Web API calls.
        vultr_api_key: Vultr API key.
        slack_signing_secret: Verifies HTTP event requests. Required without
            ``slack_app_token``.
        slack_app_token: App-level token (``xapp-``); enables Socket Mode.
        vultr_api_url: Vultr API root.
        agent_model: pydantic-ai model name for the ops agent.
        agent_max_steps: Model requests allowed per user message.
        database_url: SQLAlchemy async URL for the durable run store. Runs stay
            in memory when unset.
        run_retention_hours: How long a run is kept after its last transition.
        purge_interval_seconds: How often expired runs are purged.
        api_token: Bearer token for the workflow REST endpoints. They are not
            mounted when unset.
        log_level: Root log level.
    """

    slack_bot_token: str
    vultr_api_key: str
    slack_signing_secret: str = ""
    slack_app_token: str = ""
    vultr_api_url: str = DEFAULT_API_URL
    agent_model: str = DEFAULT_MODEL
    agent_max_steps: int = 3
    database_url: str | None = None
    run_retention_hours: float = 24.0
    purge_interval_seconds: float = 300.0
    api_token: str = ""
    log_level: str = "INFO"

    @property
    def socket_mode(self) -> bool:
        """Whether events arrive over Socket Mode instead of HTTP."""
        return bool(self.slack_app_token)

    @property
    def run_retention(self) -> timedelta:
        return timedelta(hours=self.run_retention_hours)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, *, use_dotenv: bool = True) -> AssistantConfig:
        """Build the configuration from environment variables.

        Args:
            env: Variables to read. Defaults to ``os.environ``.
            use_dotenv: Load ``.env`` into ``os.environ`` first. Ignored when
                ``env`` is given.

        Raises:
            ConfigurationError: If required variables are missing or a numeric
                variable does not parse.
        """
        if env is None:
            if use_dotenv:
                load_dotenv()
            env = os.environ

        missing = [name for name in ("SLACK_BOT_TOKEN", "VULTR_API_KEY") if not env.get(name)]
        if not env.get("SLACK_APP_TOKEN") and not env.get("SLACK_SIGNING_SECRET"):
            missing.append("SLACK_SIGNING_SECRET")

        invalid: list[str] = []

        def number(name: str, default: float, kind: type[int] | type[float]) -> float:
            raw = env.get(name)
            if not raw:
                return default
            try:
                value = kind(raw)
            except ValueError:
                invalid.append(name)
                return default
            if value <= 0:
                invalid.append(name)
                return default
            return value

        max_steps = int(number("AGENT_MAX_STEPS", 3, int))
        retention_hours = float(number("RUN_RETENTION_HOURS", 24.0, float))
        purge_interval = float(number("RUN_PURGE_INTERVAL_SECONDS", 300.0, float))

        if missing or invalid:
            raise ConfigurationError(missing, invalid)

        return cls(
            slack_bot_token=env["SLACK_BOT_TOKEN"],
            vultr_api_key=env["VULTR_API_KEY"],
            slack_signing_secret=env.get("SLACK_SIGNING_SECRET", ""),
            slack_app_token=env.get("SLACK_APP_TOKEN", ""),
            vultr_api_url=env.get("VULTR_API_URL") or DEFAULT_API_URL,
            agent_model=env.get("OPS_AGENT_MODEL") or DEFAULT_MODEL,
            agent_max_steps=max_steps,
            database_url=env.get("DATABASE_URL") or None,
            run_retention_hours=retention_hours,
            purge_interval_seconds=purge_interval,
            api_token=env.get("OPS_API_TOKEN", ""),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )
