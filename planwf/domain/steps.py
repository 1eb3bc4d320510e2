"""Fixed registry of workflow steps.

The table is built once at import time and never mutated, so lookups are
safe from any number of sessions without locking.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from types import MappingProxyType

from planwf.domain.errors import InvalidStepError


class StepId(IntEnum):
    """Ordered workflow steps."""

    CLARIFICATION = 1
    SOLUTION_PROPOSAL = 2
    PLAN_DRAFTING = 3
    DOCUMENT_GENERATION = 4


class WorkflowPhase(str, Enum):
    """Controller state. Each step has one pending phase, plus two terminals."""

    CLARIFICATION_PENDING = "clarification_pending"
    SOLUTION_PENDING = "solution_pending"
    PLAN_PENDING = "plan_pending"
    DRAFTING_PENDING = "drafting_pending"
    COMPLETED = "completed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowPhase.COMPLETED, WorkflowPhase.ABORTED)


@dataclass(frozen=True, slots=True)
class StepDefinition:
    """Immutable description of one workflow step.

    Attributes:
        id: Position in the workflow (1-4)
        name: Human-readable step name
        phase: Controller phase while this step is open
        required_acceptance: Description of the acceptance predicate
        requirement_names: Requirement names the gate may report for this step
        produces_artifact: Whether completing the step persists the design document
    """

    id: StepId
    name: str
    phase: WorkflowPhase
    required_acceptance: str
    requirement_names: tuple[str, ...]
    produces_artifact: bool = False


_STEPS: MappingProxyType[StepId, StepDefinition] = MappingProxyType({
    StepId.CLARIFICATION: StepDefinition(
        id=StepId.CLARIFICATION,
        name="Clarification",
        phase=WorkflowPhase.CLARIFICATION_PENDING,
        required_acceptance=(
            "Purpose, constraints and success criteria are all recorded and the "
            "user has confirmed there is no remaining ambiguity."
        ),
        requirement_names=("purpose", "constraints", "success-criteria", "confirmation"),
    ),
    StepId.SOLUTION_PROPOSAL: StepDefinition(
        id=StepId.SOLUTION_PROPOSAL,
        name="SolutionProposal",
        phase=WorkflowPhase.SOLUTION_PENDING,
        required_acceptance=(
            "Two or three alternatives with advantages, disadvantages and "
            "applicable scenarios were presented, exactly one is recommended, "
            "and the user confirmed the chosen solution."
        ),
        requirement_names=(
            "insufficient-alternatives",
            "too-many-alternatives",
            "alternative-details",
            "recommendation",
            "confirmation",
        ),
    ),
    StepId.PLAN_DRAFTING: StepDefinition(
        id=StepId.PLAN_DRAFTING,
        name="PlanDrafting",
        phase=WorkflowPhase.PLAN_PENDING,
        required_acceptance=(
            "The outline covers exactly Architecture, Components, Data Flow, "
            "Error Handling and Testing."
        ),
        requirement_names=("<module>", "unexpected-module"),
    ),
    StepId.DOCUMENT_GENERATION: StepDefinition(
        id=StepId.DOCUMENT_GENERATION,
        name="DocumentGeneration",
        phase=WorkflowPhase.DRAFTING_PENDING,
        required_acceptance=(
            "Every mandatory module has a confirmed section and the design "
            "document was written to its canonical path."
        ),
        requirement_names=("<module>", "pending-section", "artifact"),
        produces_artifact=True,
    ),
})


def _coerce(step_id: object) -> StepId:
    if isinstance(step_id, bool) or not isinstance(step_id, int):
        raise InvalidStepError(step_id)
    try:
        return StepId(step_id)
    except ValueError:
        raise InvalidStepError(step_id) from None


def get_step(step_id: int) -> StepDefinition:
    """Look up a step definition.

    Raises:
        InvalidStepError: If step_id is not 1-4
    """
    return _STEPS[_coerce(step_id)]


def next_step(step_id: int) -> StepDefinition | None:
    """Return the step after step_id, or None at the last step.

    Raises:
        InvalidStepError: If step_id is not 1-4
    """
    current = _coerce(step_id)
    if current == StepId.DOCUMENT_GENERATION:
        return None
    return _STEPS[StepId(current + 1)]


def step_for_phase(phase: WorkflowPhase) -> StepDefinition | None:
    """Return the step open during phase, or None for terminal phases."""
    for step in _STEPS.values():
        if step.phase == phase:
            return step
    return None


def all_steps() -> tuple[StepDefinition, ...]:
    """All step definitions in workflow order."""
    return tuple(_STEPS[s] for s in StepId)
