"""Project metadata read from the installed distribution."""

from __future__ import annotations

import importlib.metadata

__all__ = ("__project__", "__version__")

__version__ = importlib.metadata.version("slack-ops-assistant")
"""Version of the project."""
__project__ = importlib.metadata.metadata("slack-ops-assistant")["Name"]
"""Name of the project."""
