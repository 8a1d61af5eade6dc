"""Litestar plugin wiring the assistant into an application.

This module provides the OpsAssistantPlugin, which exposes the assistant's
services through dependency injection, mounts its controllers and ties the
Slack connection and database to the application lifespan.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from litestar import Router
from litestar.di import Provide
from litestar.plugins import InitPluginProtocol

from ops_assistant.engine.local import WorkflowEngine  # noqa: TC001 - needed for DI
from ops_assistant.engine.registry import ChainRegistry  # noqa: TC001 - needed for DI
from ops_assistant.slack.app import SlackAssistant  # noqa: TC001 - needed for DI
from ops_assistant.web.controllers import (
    SlackEventsController,
    WorkflowChainController,
    WorkflowRunController,
    health_check,
)

if TYPE_CHECKING:
    from litestar.config.app import AppConfig

    from ops_assistant.services import AssistantServices

__all__ = ["OpsAssistantPlugin", "OpsAssistantPluginConfig"]


@dataclass
class OpsAssistantPluginConfig:
    """Configuration for the OpsAssistantPlugin.

    Attributes:
        services: The assistant's service graph.
        slack: The Slack interface. HTTP events are only routed when given.
        dependency_key_registry: The key used for dependency injection of
            the ChainRegistry. Defaults to "workflow_registry".
        dependency_key_engine: The key used for dependency injection of
            the WorkflowEngine. Defaults to "workflow_engine".
        enable_api: Whether to enable the workflow REST endpoints. Defaults to True.
        api_path_prefix: URL path prefix for the workflow endpoints.
            Defaults to "/workflows".
        api_guards: List of Litestar guards to apply to the workflow endpoints.
        api_tags: OpenAPI tags to apply to the workflow endpoints.
    """

    services: AssistantServices
    slack: SlackAssistant | None = None
    dependency_key_registry: str = "workflow_registry"
    dependency_key_engine: str = "workflow_engine"
    enable_api: bool = True
    api_path_prefix: str = "/workflows"
    api_guards: list[Any] = field(default_factory=list)
    api_tags: list[str] = field(default_factory=lambda: ["Workflows"])


class OpsAssistantPlugin(InitPluginProtocol):
    """Litestar plugin for the ops assistant.

    Example:
        Mounting the assistant::

            from litestar import Litestar

            from ops_assistant import AssistantConfig, OpsAssistantPlugin, OpsAssistantPluginConfig
            from ops_assistant.services import build_services
            from ops_assistant.slack import SlackAssistant

            config = AssistantConfig.from_env()
            services = build_services(config)
            app = Litestar(
                plugins=[
                    OpsAssistantPlugin(
                        OpsAssistantPluginConfig(services=services, slack=SlackAssistant(config, services))
                    )
                ]
            )
    """

    __slots__ = ("_config",)

    def __init__(self, config: OpsAssistantPluginConfig) -> None:
        """Initialize the plugin.

        Args:
            config: Configuration for the plugin.
        """
        self._config = config

    @property
    def services(self) -> AssistantServices:
        return self._config.services

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Register dependencies, routes and lifespan hooks.

        Args:
            app_config: The Litestar application configuration.

        Returns:
            The modified application configuration.
        """
        services = self._config.services
        slack = self._config.slack

        def provide_registry() -> ChainRegistry:
            return services.registry

        def provide_engine() -> WorkflowEngine:
            return services.engine

        app_config.dependencies[self._config.dependency_key_registry] = Provide(
            provide_registry,
            sync_to_thread=False,
        )
        app_config.dependencies[self._config.dependency_key_engine] = Provide(
            provide_engine,
            sync_to_thread=False,
        )

        app_config.route_handlers.append(health_check)

        if self._config.enable_api:
            workflow_router = Router(
                path=self._config.api_path_prefix,
                route_handlers=[WorkflowChainController, WorkflowRunController],
                guards=self._config.api_guards,
                tags=self._config.api_tags,
            )
            app_config.route_handlers.append(workflow_router)

        app_config.on_startup.append(services.startup)

        if slack is not None:

            def provide_slack() -> SlackAssistant:
                return slack

            app_config.dependencies["slack_assistant"] = Provide(provide_slack, sync_to_thread=False)
            app_config.route_handlers.append(SlackEventsController)
            app_config.on_startup.append(slack.start)
            app_config.on_shutdown.append(slack.stop)

        app_config.on_shutdown.append(services.shutdown)

        return app_config
