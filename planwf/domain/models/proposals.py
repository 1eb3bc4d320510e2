"""Solution alternatives presented during the proposal step."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SolutionAlternative(BaseModel):
    """One candidate solution.

    Notes:
    - Strict: rejects unknown keys so malformed proposal files fail loudly.
    - Detail lists may be empty here; the acceptance gate reports them.
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    summary: str = ""
    advantages: list[str] = Field(default_factory=list)
    disadvantages: list[str] = Field(default_factory=list)
    applicable_scenarios: list[str] = Field(default_factory=list)
    recommended: bool = False

    @field_validator("name")
    @classmethod
    def _name_non_empty(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("name must be non-empty")
        return v2

    @property
    def has_details(self) -> bool:
        """True when advantages, disadvantages and scenarios are all present."""
        return all(
            any(item.strip() for item in items)
            for items in (self.advantages, self.disadvantages, self.applicable_scenarios)
        )
