from typing import Any

from .text_collaborator import TextCollaborator


class ManualCollaborator(TextCollaborator):
    """Human-in-the-loop collaborator: the host writes every piece of text."""

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        return {
            "name": "manual",
            "description": "Human-in-the-loop (host supplies all text)",
            "requires_config": False,
            "config_keys": [],
            "supports_system_prompt": False,
        }

    def validate(self) -> None:
        """Manual collaborator has no external dependencies to validate."""
        pass

    def generate(
        self,
        prompt: str,
        context: dict[str, Any] | None = None,
        system_prompt: str | None = None,
    ) -> str | None:
        """Returns None to signal the host must provide the text."""
        return None
