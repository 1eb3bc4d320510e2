from typing import Literal

from pydantic import BaseModel, Field


class BaseOutput(BaseModel):
    schema_version: int = 1
    command: str
    exit_code: int
    error: str | None = None


class SessionOutput(BaseOutput):
    """Result of a command that records input for the open step."""

    command: Literal[
        "start",
        "clarify",
        "confirm-clarification",
        "alternatives",
        "choose",
        "outline",
        "abort",
    ]
    # On start errors, session_id may be unknown; omit it from JSON via exclude_none.
    session_id: str | None = None
    task_id: str | None = None
    step: int | None = None
    phase: str | None = None
    status: str | None = None
    messages: list[str] = Field(default_factory=list)


class StatusOutput(BaseOutput):
    command: Literal["status"] = "status"
    session_id: str
    task_id: str | None = None
    topic: str | None = None
    step: int | None = None
    phase: str | None = None
    status: str | None = None
    missing: list[str] = Field(default_factory=list)
    pending_module: str | None = None
    confirmed_modules: list[str] = Field(default_factory=list)
    artifact_path: str | None = None
    last_error: str | None = None


class SessionSummary(BaseModel):
    """Summary of a single session for list output."""
    session_id: str
    task_id: str
    step: int
    phase: str
    status: str
    created_at: str
    updated_at: str


class ListOutput(BaseOutput):
    command: Literal["list"] = "list"
    sessions: list[SessionSummary] = Field(default_factory=list)
    total: int = 0


class TextOutput(BaseOutput):
    """Collaborator text returned to the host."""

    command: Literal["questions", "proposals"]
    session_id: str
    text: str | None = None


class SectionOutput(BaseOutput):
    command: Literal["propose-section", "draft-section", "confirm-section", "reject-section"]
    session_id: str
    module: str | None = None
    part: int | None = None
    words: int | None = None
    overflow: bool = False
    appended: bool = False
    pending_module: str | None = None
    confirmed_modules: list[str] = Field(default_factory=list)


class AdvanceOutput(BaseOutput):
    command: Literal["advance"] = "advance"
    session_id: str
    advanced: bool = False
    step: int | None = None
    phase: str | None = None
    status: str | None = None
    missing: list[str] = Field(default_factory=list)
    artifact_path: str | None = None
