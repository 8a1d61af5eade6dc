"""Cloud control-plane access."""

from __future__ import annotations

from ops_assistant.vultr.client import DEFAULT_API_URL, InstanceDirectoryClient, InstanceRecord

__all__ = ["DEFAULT_API_URL", "InstanceDirectoryClient", "InstanceRecord"]
