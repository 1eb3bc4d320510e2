"""Domain models for the planning workflow engine."""

from .document import ArtifactRecord, DocumentSection, PendingSection, RevisionRequest
from .proposals import SolutionAlternative
from .prompt_sections import PromptSections
from .session import (
    PhaseTransition,
    SessionStatus,
    WorkflowSession,
    derive_task_id,
    slugify_topic,
)


__all__ = [
    "ArtifactRecord",
    "DocumentSection",
    "PendingSection",
    "RevisionRequest",
    "SolutionAlternative",
    "PromptSections",
    "PhaseTransition",
    "SessionStatus",
    "WorkflowSession",
    "derive_task_id",
    "slugify_topic",
]
