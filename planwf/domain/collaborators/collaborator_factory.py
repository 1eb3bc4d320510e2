from typing import Any

from .text_collaborator import TextCollaborator


class CollaboratorFactory:
    """Factory for creating text collaborator instances (Factory pattern)."""

    _registry: dict[str, type[TextCollaborator]] = {}

    @classmethod
    def register(cls, key: str, collaborator_class: type[TextCollaborator]) -> None:
        """
        Register a collaborator implementation.

        Args:
            key: Collaborator identifier (e.g., "manual", "command")
            collaborator_class: The class to register
        """
        cls._registry[key] = collaborator_class

    @classmethod
    def create(cls, key: str, config: dict[str, Any] | None = None) -> TextCollaborator:
        """
        Create a collaborator instance.

        Collaborators that take configuration receive it as a single dict;
        those without config keys are constructed without arguments.

        Raises:
            KeyError: If key is not registered
        """
        if key not in cls._registry:
            available = ", ".join(cls._registry.keys())
            raise KeyError(
                f"Collaborator: '{key}' not found. "
                f"Available collaborators: {available}"
            )

        collaborator_class = cls._registry[key]
        if collaborator_class.get_metadata().get("config_keys"):
            return collaborator_class(config or {})
        return collaborator_class()

    @classmethod
    def list_collaborators(cls) -> list[str]:
        return list(cls._registry.keys())

    @classmethod
    def get_metadata(cls, key: str) -> dict[str, Any] | None:
        """Metadata for a registered collaborator, None if unknown."""
        if key not in cls._registry:
            return None
        return cls._registry[key].get_metadata()
