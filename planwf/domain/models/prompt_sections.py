"""Prompt sections model for structured collaborator prompts."""

from pydantic import BaseModel, Field


class PromptSections(BaseModel):
    """Structured prompt sections for system/user prompt separation.

    Lets collaborators that support system prompts receive role and
    constraints separately from the work itself.
    """

    role: str | None = None
    background: dict[str, str] = Field(default_factory=dict)
    context: str | None = None
    task: str  # Required field
    constraints: str | None = None
    expected_outputs: list[str] = Field(default_factory=list)
    output_format: str | None = None
