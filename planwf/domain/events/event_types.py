"""Workflow event types for observer pattern notifications."""

from enum import Enum


class WorkflowEventType(str, Enum):
    """Typed workflow events for host integration notifications."""

    # Step lifecycle
    STEP_ENTERED = "step_entered"
    GATE_BLOCKED = "gate_blocked"

    # Section confirmation loop
    SECTION_PROPOSED = "section_proposed"
    SECTION_CONFIRMED = "section_confirmed"
    SECTION_REJECTED = "section_rejected"

    # Artifacts
    ARTIFACT_PERSISTED = "artifact_persisted"

    # Workflow lifecycle
    WORKFLOW_COMPLETED = "workflow_completed"
    WORKFLOW_ABORTED = "workflow_aborted"
