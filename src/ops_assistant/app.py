"""Application factory.

Run with::

    uvicorn ops_assistant.app:create_app --factory --port 3000
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from litestar import Litestar
from litestar.logging import LoggingConfig

from ops_assistant.config import AssistantConfig
from ops_assistant.plugin import OpsAssistantPlugin, OpsAssistantPluginConfig
from ops_assistant.services import build_services
from ops_assistant.slack.app import SlackAssistant
from ops_assistant.web.guards import bearer_token_guard

if TYPE_CHECKING:
    from ops_assistant.services import AssistantServices

__all__ = ["create_app"]


def create_app(
    config: AssistantConfig | None = None,
    services: AssistantServices | None = None,
) -> Litestar:
    """Build the Litestar application.

    Args:
        config: Configuration. Read from the environment when omitted.
        services: Pre-built services. Built from ``config`` when omitted.

    Returns:
        The application, with Slack connected on startup. The workflow
        endpoints are mounted only when ``config.api_token`` is set, and then
        require it as a bearer token.
    """
    config = config or AssistantConfig.from_env()
    services = services or build_services(config)
    slack = SlackAssistant(config, services)

    logging_config = LoggingConfig(
        root={"level": config.log_level, "handlers": ["queue_listener"]},
        loggers={"ops_assistant": {"level": config.log_level, "propagate": True}},
        log_exceptions="always",
    )

    plugin_config = OpsAssistantPluginConfig(
        services=services,
        slack=slack,
        enable_api=bool(config.api_token),
        api_guards=[bearer_token_guard(config.api_token)] if config.api_token else [],
    )

    return Litestar(
        plugins=[OpsAssistantPlugin(plugin_config)],
        logging_config=logging_config,
    )
