"""Per-step acceptance predicates.

``evaluate`` is a pure function of (step, session): it never mutates the
session and never touches the filesystem, so repeated evaluation with no new
input always yields the same result.
"""

from dataclasses import dataclass, field

from planwf.domain.constants import MANDATORY_MODULES, MAX_ALTERNATIVES, MIN_ALTERNATIVES
from planwf.domain.errors import GateViolationError
from planwf.domain.models.session import WorkflowSession
from planwf.domain.steps import StepDefinition, StepId, get_step

# Requirement names reported in GateResult.missing
PURPOSE = "purpose"
CONSTRAINTS = "constraints"
SUCCESS_CRITERIA = "success-criteria"
CONFIRMATION = "confirmation"
INSUFFICIENT_ALTERNATIVES = "insufficient-alternatives"
TOO_MANY_ALTERNATIVES = "too-many-alternatives"
ALTERNATIVE_DETAILS = "alternative-details"
RECOMMENDATION = "recommendation"
UNEXPECTED_MODULE = "unexpected-module"
PENDING_SECTION = "pending-section"
ARTIFACT = "artifact"


@dataclass(frozen=True, slots=True)
class GateResult:
    """Outcome of an acceptance check.

    Attributes:
        satisfied: True when the step may be left
        missing: Names of unmet requirements (empty when satisfied)
    """

    satisfied: bool
    missing: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_missing(cls, missing: set[str]) -> "GateResult":
        return cls(satisfied=not missing, missing=frozenset(missing))


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _check_clarification(session: WorkflowSession) -> set[str]:
    missing: set[str] = set()
    if _blank(session.clarified_purpose):
        missing.add(PURPOSE)
    if _blank(session.clarified_constraints):
        missing.add(CONSTRAINTS)
    if _blank(session.clarified_success_criteria):
        missing.add(SUCCESS_CRITERIA)
    if not session.no_ambiguity_confirmed:
        missing.add(CONFIRMATION)
    return missing


def _check_solution(session: WorkflowSession) -> set[str]:
    missing: set[str] = set()
    alternatives = session.alternatives

    if len(alternatives) < MIN_ALTERNATIVES:
        missing.add(INSUFFICIENT_ALTERNATIVES)
    elif len(alternatives) > MAX_ALTERNATIVES:
        missing.add(TOO_MANY_ALTERNATIVES)

    for alt in alternatives:
        if not alt.has_details:
            missing.add(f"{ALTERNATIVE_DETAILS}:{alt.name}")

    if sum(1 for alt in alternatives if alt.recommended) != 1:
        missing.add(RECOMMENDATION)

    if session.chosen_solution is None:
        missing.add(CONFIRMATION)
    return missing


def _check_outline(session: WorkflowSession) -> set[str]:
    missing = {m for m in MANDATORY_MODULES if _blank(session.plan_outline.get(m))}
    missing.update(
        f"{UNEXPECTED_MODULE}:{name}"
        for name in session.plan_outline
        if name not in MANDATORY_MODULES
    )
    return missing


def _check_document(session: WorkflowSession) -> set[str]:
    confirmed = set(session.confirmed_modules)
    missing = {m for m in MANDATORY_MODULES if m not in confirmed}
    if session.pending_section is not None:
        missing.add(PENDING_SECTION)
    if session.artifact is None:
        missing.add(ARTIFACT)
    return missing


_CHECKS = {
    StepId.CLARIFICATION: _check_clarification,
    StepId.SOLUTION_PROPOSAL: _check_solution,
    StepId.PLAN_DRAFTING: _check_outline,
    StepId.DOCUMENT_GENERATION: _check_document,
}


def evaluate(step: StepDefinition | int, session: WorkflowSession) -> GateResult:
    """Evaluate the acceptance criterion of step against session.

    Raises:
        InvalidStepError: If step is an id outside the step table
    """
    step_def = step if isinstance(step, StepDefinition) else get_step(step)
    return GateResult.from_missing(_CHECKS[step_def.id](session))


class AcceptanceGate:
    """Injectable wrapper around ``evaluate``."""

    def evaluate(self, step: StepDefinition | int, session: WorkflowSession) -> GateResult:
        return evaluate(step, session)

    def require(self, step: StepDefinition | int, session: WorkflowSession) -> GateResult:
        """Evaluate and raise when unsatisfied.

        Raises:
            GateViolationError: If any requirement is unmet
        """
        step_def = step if isinstance(step, StepDefinition) else get_step(step)
        result = self.evaluate(step_def, session)
        if not result.satisfied:
            raise GateViolationError(step_def.name, result.missing)
        return result
