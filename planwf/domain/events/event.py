from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from planwf.domain.events.event_types import WorkflowEventType
from planwf.domain.steps import StepId, WorkflowPhase


class WorkflowEvent(BaseModel):
    """Something observable happened to a planning session.

    ``phase`` and ``step`` describe the session after the change. ``module``
    is set for section events, ``artifact_path`` once the design document
    exists.
    """

    model_config = ConfigDict(frozen=True)

    event_type: WorkflowEventType
    session_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    phase: WorkflowPhase | None = None
    step: StepId | None = None
    module: str | None = None
    artifact_path: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
