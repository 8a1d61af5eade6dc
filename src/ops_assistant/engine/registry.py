"""Chain registry for managing chain definitions.

This module provides a registry for storing, retrieving, and managing chain
definitions with support for versioning.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ops_assistant.exceptions import ChainNotFoundError, ChainValidationError

if TYPE_CHECKING:
    from ops_assistant.core.definition import ChainDefinition

__all__ = ["ChainRegistry"]


def _version_key(version: str) -> tuple[tuple[int, int | str], ...]:
    """Sort key comparing dotted versions part by part, numbers numerically."""
    return tuple((0, int(part)) if part.isdigit() else (1, part) for part in version.split("."))


class ChainRegistry:
    """Registry for storing and retrieving chain definitions.

    The registry maintains a mapping of chain names to versions and their
    definitions. It is built once at process start and handed to the engine
    and the approval bridge; nothing looks chains up through globals.

    Attributes:
        _definitions: Nested dict mapping name -> version -> ChainDefinition.
    """

    def __init__(self) -> None:
        """Initialize an empty chain registry."""
        self._definitions: dict[str, dict[str, ChainDefinition]] = {}

    def register(self, definition: ChainDefinition) -> None:
        """Validate and register a chain definition.

        Args:
            definition: The chain to register.

        Raises:
            ChainValidationError: If the definition is not valid.

        Example:
            >>> registry = ChainRegistry()
            >>> registry.register(create_restart_vm_chain(directory))
        """
        errors = definition.validate()
        if errors:
            raise ChainValidationError(errors)

        self._definitions.setdefault(definition.name, {})[definition.version] = definition

    def get_definition(self, name: str, version: str | None = None) -> ChainDefinition:
        """Retrieve a chain definition by name and optional version.

        Args:
            name: The chain name.
            version: The chain version. If None, returns the latest version.

        Returns:
            The ChainDefinition for the requested chain.

        Raises:
            ChainNotFoundError: If the chain name or version is not found.
        """
        versions = self._definitions.get(name)
        if not versions:
            raise ChainNotFoundError(name)

        if version is None:
            version = max(versions, key=_version_key)

        if version not in versions:
            raise ChainNotFoundError(name, version)

        return versions[version]

    def list_definitions(self, active_only: bool = True) -> list[ChainDefinition]:
        """List all registered chain definitions.

        Args:
            active_only: If True, only return the latest version of each chain.
                If False, return all versions.

        Returns:
            List of ChainDefinition objects.
        """
        definitions: list[ChainDefinition] = []

        for versions in self._definitions.values():
            if active_only:
                definitions.append(versions[max(versions, key=_version_key)])
            else:
                definitions.extend(versions.values())

        return definitions
