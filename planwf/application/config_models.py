"""Validated configuration model.

Config structure (``.planwf/config.yml``):
    collaborator: command
    collaborator_config:
      command: ["claude", "-p"]
      timeout: 300
    section_min_words: 200
    section_max_words: 300
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from planwf.domain.constants import DEFAULT_SESSIONS_ROOT, SECTION_MAX_WORDS, SECTION_MIN_WORDS


class PlanwfConfig(BaseModel):
    """Top-level configuration after layering."""

    model_config = ConfigDict(extra="forbid")

    collaborator: str = "manual"
    collaborator_config: dict[str, Any] = Field(default_factory=dict)
    section_min_words: int = Field(default=SECTION_MIN_WORDS, ge=1)
    section_max_words: int = Field(default=SECTION_MAX_WORDS, ge=1)
    sessions_root: Path = DEFAULT_SESSIONS_ROOT

    @model_validator(mode="after")
    def _band_ordered(self) -> "PlanwfConfig":
        if self.section_max_words < self.section_min_words:
            raise ValueError("section_max_words must be >= section_min_words")
        return self
