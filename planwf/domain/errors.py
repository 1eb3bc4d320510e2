"""Domain-level exceptions for the planning workflow engine."""

from collections.abc import Iterable


class PlanwfError(Exception):
    """Base class for workflow errors surfaced to the caller."""


class InvalidStepError(PlanwfError):
    """Raised when a step id is outside the fixed step table.

    Indicates a defect in the caller; retrying without a code fix is pointless.
    """

    def __init__(self, step_id: object):
        self.step_id = step_id
        super().__init__(f"Invalid step id: {step_id!r} (valid ids are 1-4)")


class GateViolationError(PlanwfError):
    """Raised when a transition is forced while acceptance is unsatisfied."""

    def __init__(self, step_name: str, missing: Iterable[str]):
        self.step_name = step_name
        self.missing = frozenset(missing)
        super().__init__(
            f"Cannot leave {step_name}: unmet requirements {sorted(self.missing)}"
        )


class StepOrderViolation(PlanwfError):
    """Raised when an action targets a step other than the open one."""


class SectionOrderViolation(StepOrderViolation):
    """Raised when a section is proposed, confirmed or rejected out of order."""


class PersistenceFailure(PlanwfError):
    """Raised when the design document cannot be written."""


class CollaboratorFailure(PlanwfError):
    """Raised when the text-generation collaborator fails or returns nothing."""


class SectionOverflowWarning(UserWarning):
    """Issued when a proposed section exceeds the soft word band."""
