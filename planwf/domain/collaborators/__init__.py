from .text_collaborator import TextCollaborator
from .collaborator_factory import CollaboratorFactory
from .manual_collaborator import ManualCollaborator
from .command_collaborator import CommandCollaborator
from .claude_code_collaborator import ClaudeCodeCollaborator

# Register built-in collaborators
CollaboratorFactory.register("manual", ManualCollaborator)
CollaboratorFactory.register("command", CommandCollaborator)
CollaboratorFactory.register("claude-code", ClaudeCodeCollaborator)

__all__ = [
    "TextCollaborator",
    "CollaboratorFactory",
    "ManualCollaborator",
    "CommandCollaborator",
    "ClaudeCodeCollaborator",
]
