from abc import ABC, abstractmethod
from typing import Any


class TextCollaborator(ABC):
    """Abstract interface for text-generation collaborators (Strategy pattern).

    A collaborator produces clarifying questions, solution proposals and draft
    sections. The controller treats every call as opaque and blocking.
    """

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        """Return collaborator metadata for discovery commands.

        Returns:
            dict with keys: name, description, requires_config, config_keys,
                           supports_system_prompt
        """
        return {
            "name": "unknown",
            "description": "No description available",
            "requires_config": False,
            "config_keys": [],
            "supports_system_prompt": False,
        }

    @abstractmethod
    def validate(self) -> None:
        """Verify the collaborator is usable.

        Raises:
            CollaboratorFailure: If the collaborator is misconfigured or unavailable
        """
        ...

    @abstractmethod
    def generate(
        self,
        prompt: str,
        context: dict[str, Any] | None = None,
        system_prompt: str | None = None,
    ) -> str | None:
        """Generate text for the given prompt.

        Args:
            prompt: The prompt text
            context: Optional context dictionary (project_root, session_id, ...)
            system_prompt: Optional system prompt for collaborators that support it

        Returns:
            Generated text, or None when the host must supply the text itself

        Raises:
            CollaboratorFailure: If the call fails
        """
        ...
