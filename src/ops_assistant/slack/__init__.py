"""Slack interface of the assistant."""

from __future__ import annotations

from ops_assistant.slack.app import SlackAssistant

__all__ = ["SlackAssistant"]
