import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from planwf.domain.models.document import (
    ArtifactRecord,
    DocumentSection,
    PendingSection,
    RevisionRequest,
)
from planwf.domain.models.proposals import SolutionAlternative
from planwf.domain.steps import StepId, WorkflowPhase

_SLUG_STRIP = re.compile(r"[\W_]+")


def slugify_topic(topic: str) -> str:
    """Lowercase the topic and collapse runs of punctuation and spaces to '-'.

    Letters and digits of any script are kept.

    Raises:
        ValueError: If nothing usable remains
    """
    slug = _SLUG_STRIP.sub("-", topic.strip().lower()).strip("-")
    if not slug:
        raise ValueError(f"Topic '{topic}' does not yield a usable file name")
    return slug


def derive_task_id(topic: str, created_on: date) -> str:
    """Task identifier: ``YYYY-MM-DD-<topic-slug>``."""
    return f"{created_on.isoformat()}-{slugify_topic(topic)}"


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"                        # Waiting on user/collaborator input
    AWAITING_CONFIRMATION = "awaiting_confirmation"    # Section proposal pending
    COMPLETED = "completed"                            # Design document persisted
    ABORTED = "aborted"                                # User stopped


class PhaseTransition(BaseModel):
    """Record of a phase/status change."""

    phase: WorkflowPhase
    status: SessionStatus
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class WorkflowSession(BaseModel):
    """Complete state snapshot of one planning session.

    Only the workflow controller assigns ``current_step`` and ``phase``; every
    other field is filled in by step-specific commands that the controller
    validates against the open step first.
    """

    model_config = ConfigDict(validate_assignment=True)

    # Identity
    session_id: str
    task_id: str
    topic: str
    created_on: date

    # Optional background from docs/tasks/<task>-task.md
    task_name: str | None = None
    task_context: str | None = None

    # State
    current_step: StepId = StepId.CLARIFICATION
    phase: WorkflowPhase = WorkflowPhase.CLARIFICATION_PENDING
    status: SessionStatus = SessionStatus.IN_PROGRESS

    # Step 1: clarification
    clarified_purpose: str | None = None
    clarified_constraints: str | None = None
    clarified_success_criteria: str | None = None
    no_ambiguity_confirmed: bool = False

    # Step 2: solution proposal
    alternatives: list[SolutionAlternative] = Field(default_factory=list)
    chosen_solution: SolutionAlternative | None = None

    # Step 3: outline, module name -> notes (insertion order preserved)
    plan_outline: dict[str, str] = Field(default_factory=dict)

    # Step 4: incremental document assembly
    pending_section: PendingSection | None = None
    open_parts: list[str] = Field(default_factory=list)
    document_sections: list[DocumentSection] = Field(default_factory=list)
    revision_requests: list[RevisionRequest] = Field(default_factory=list)

    # Output
    artifact: ArtifactRecord | None = None

    # Extensibility
    metadata: dict[str, Any] = Field(default_factory=dict)

    # Error tracking
    last_error: str | None = None

    # Timestamps
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Phase history
    phase_history: list[PhaseTransition] = Field(default_factory=list)

    # Transient progress messages (excluded from serialization)
    messages: list[str] = Field(default_factory=list, exclude=True)

    @field_validator("topic")
    @classmethod
    def _topic_usable(cls, v: str) -> str:
        v2 = v.strip()
        slugify_topic(v2)
        return v2

    @property
    def topic_slug(self) -> str:
        return slugify_topic(self.topic)

    @property
    def confirmed_modules(self) -> list[str]:
        return [s.module for s in self.document_sections]

    @property
    def is_terminal(self) -> bool:
        return self.phase.is_terminal
