"""Design document building blocks: proposed, confirmed and persisted sections."""

from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

from planwf.domain.constants import MANDATORY_MODULES


def _known_module(v: str) -> str:
    if v not in MANDATORY_MODULES:
        raise ValueError(
            f"Unknown module '{v}'. Expected one of: {', '.join(MANDATORY_MODULES)}"
        )
    return v


ModuleName = Annotated[str, AfterValidator(_known_module)]


class PendingSection(BaseModel):
    """A section proposal awaiting explicit confirmation or rejection.

    When the draft overflowed the word band, ``text`` holds the bounded part
    and ``remainder`` the continuation that must be proposed next.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    module: ModuleName
    text: str
    remainder: str = ""
    word_count: int
    part: int = 1
    overflow: bool = False
    proposed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_continuation(self) -> bool:
        return bool(self.remainder.strip())


class DocumentSection(BaseModel):
    """A confirmed section of the design document."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    module: ModuleName
    text: str
    confirmed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RevisionRequest(BaseModel):
    """Feedback recorded when a proposed section is rejected."""

    model_config = ConfigDict(extra="forbid")

    module: str
    feedback: str
    rejected_text: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ArtifactRecord(BaseModel):
    """Metadata for the persisted design document."""

    model_config = ConfigDict(extra="forbid")

    path: str
    sections: list[str]
    sha256: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("path")
    @classmethod
    def _path_non_empty(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("path must be non-empty")
        return v2
