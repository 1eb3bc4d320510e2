"""Gated workflow control for planning sessions.

The controller is the only component that moves a session between steps.
Every command loads the session, validates the request against the open
step, mutates, and saves; a rejected command saves nothing.
"""

import logging
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Any

from planwf.application.acceptance_gate import ARTIFACT, AcceptanceGate, GateResult
from planwf.application.artifact_writer import write_design_document
from planwf.application.prompt_builder import (
    PromptBuilder,
    clarification_sections,
    proposal_sections,
    section_sections,
)
from planwf.application.section_assembler import SectionAssembler, WordBand
from planwf.application.task_context import load_task_context
from planwf.domain.errors import (
    CollaboratorFailure,
    GateViolationError,
    PersistenceFailure,
    SectionOrderViolation,
    StepOrderViolation,
)
from planwf.domain.events.event_types import WorkflowEventType
from planwf.domain.models.document import DocumentSection, PendingSection, RevisionRequest
from planwf.domain.models.prompt_sections import PromptSections
from planwf.domain.models.proposals import SolutionAlternative
from planwf.domain.models.session import (
    PhaseTransition,
    SessionStatus,
    WorkflowSession,
    derive_task_id,
)
from planwf.domain.persistence.session_store import SessionStore
from planwf.domain.steps import StepId, WorkflowPhase, get_step, next_step

if TYPE_CHECKING:
    from planwf.domain.collaborators.text_collaborator import TextCollaborator
    from planwf.domain.events.emitter import WorkflowEventEmitter

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AdvanceResult:
    """Outcome of ``WorkflowController.advance``.

    Attributes:
        advanced: Whether the session moved to a new phase
        step: Open step after the call
        phase: Phase after the call
        status: Status after the call
        missing: Unmet requirements of the step that was evaluated
        artifact_path: Design document path once persisted
    """

    advanced: bool
    step: StepId
    phase: WorkflowPhase
    status: SessionStatus
    missing: frozenset[str] = frozenset()
    artifact_path: str | None = None


@dataclass
class WorkflowController:
    """Finite-state driver for the four-step planning workflow.

    Clarification -> SolutionProposal -> PlanDrafting -> DocumentGeneration,
    each guarded by the acceptance gate, with Aborted reachable from any
    non-terminal phase. Text generation is delegated to an optional
    collaborator; the controller imposes no timeout on it.
    """

    session_store: SessionStore
    project_root: Path
    collaborator: "TextCollaborator | None" = None
    event_emitter: "WorkflowEventEmitter | None" = None
    gate: AcceptanceGate = field(default_factory=AcceptanceGate)
    word_band: WordBand = field(default_factory=WordBand)

    def __post_init__(self) -> None:
        if self.event_emitter is None:
            from planwf.domain.events.emitter import WorkflowEventEmitter
            self.event_emitter = WorkflowEventEmitter()
        self.assembler = SectionAssembler(self.word_band)

    # ========================================================================
    # Session lifecycle
    # ========================================================================

    def start(
        self,
        topic: str,
        *,
        task: str | None = None,
        created_on: date | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> WorkflowSession:
        """Create and persist a new session at Clarification.

        Args:
            topic: Task theme; names the design document
            task: Optional task name; ``docs/tasks/<task>-task.md`` is merged
                as background when present
            created_on: Session date (default: today)
            metadata: Free-form host data

        Raises:
            ValueError: If topic or task cannot be used
        """
        created_on = created_on or date.today()
        task_context = load_task_context(self.project_root, task) if task else None

        initial_step = get_step(StepId.CLARIFICATION)
        session = WorkflowSession(
            session_id=uuid.uuid4().hex,
            task_id=derive_task_id(topic, created_on),
            topic=topic,
            created_on=created_on,
            task_name=task,
            task_context=task_context,
            current_step=initial_step.id,
            phase=initial_step.phase,
            status=SessionStatus.IN_PROGRESS,
            metadata=metadata or {},
            phase_history=[
                PhaseTransition(phase=initial_step.phase, status=SessionStatus.IN_PROGRESS)
            ],
        )
        if task_context:
            self._add_message(session, f"Loaded task context for '{task}'")

        self.session_store.save(session)
        logger.info("Started session %s (%s)", session.session_id, session.task_id)
        self._emit(WorkflowEventType.STEP_ENTERED, session)
        return session

    def load(self, session_id: str) -> WorkflowSession:
        """Load a session, e.g. to resume it in a new process."""
        return self.session_store.load(session_id)

    def evaluate(self, session_id: str) -> GateResult:
        """Evaluate the open step's acceptance without changing anything."""
        session = self.session_store.load(session_id)
        return self.gate.evaluate(session.current_step, session)

    def abort(self, session_id: str) -> WorkflowSession:
        """Stop the session. Valid from any non-terminal phase.

        Raises:
            StepOrderViolation: If the session is already completed or aborted
        """
        session = self._load_active(session_id)
        self._transition(session, WorkflowPhase.ABORTED, SessionStatus.ABORTED)
        self.session_store.save(session)
        logger.info("Aborted session %s at %s", session_id, session.current_step.name)
        self._emit(WorkflowEventType.WORKFLOW_ABORTED, session)
        return session

    # ========================================================================
    # Step 1: Clarification
    # ========================================================================

    def record_clarification(
        self,
        session_id: str,
        *,
        purpose: str | None = None,
        constraints: str | None = None,
        success_criteria: str | None = None,
    ) -> WorkflowSession:
        """Record clarified facts; omitted arguments keep their current value.

        Changing any value withdraws an earlier no-ambiguity confirmation,
        since it covered the previous answers.
        """
        session = self._open(session_id, StepId.CLARIFICATION)

        updates = {
            "clarified_purpose": purpose,
            "clarified_constraints": constraints,
            "clarified_success_criteria": success_criteria,
        }
        changed = False
        for attr, value in updates.items():
            if value is None:
                continue
            value = value.strip()
            if getattr(session, attr) != value:
                setattr(session, attr, value)
                changed = True

        if changed and session.no_ambiguity_confirmed:
            session.no_ambiguity_confirmed = False
            self._add_message(session, "Clarification changed; confirmation withdrawn")

        self.session_store.save(session)
        return session

    def confirm_no_ambiguity(self, session_id: str) -> WorkflowSession:
        """Record the user's confirmation that nothing remains ambiguous."""
        session = self._open(session_id, StepId.CLARIFICATION)
        session.no_ambiguity_confirmed = True
        self.session_store.save(session)
        return session

    def request_clarifying_questions(self, session_id: str) -> str:
        """Ask the collaborator for clarifying questions.

        Raises:
            CollaboratorFailure: If no collaborator is configured or it fails
        """
        session = self._open(session_id, StepId.CLARIFICATION)
        return self._collaborate(session, clarification_sections(session))

    # ========================================================================
    # Step 2: Solution proposal
    # ========================================================================

    def record_alternatives(
        self,
        session_id: str,
        alternatives: Iterable[SolutionAlternative | Mapping[str, Any]],
    ) -> WorkflowSession:
        """Record the alternatives presented to the user.

        Replaces any earlier set and clears an earlier choice.

        Raises:
            ValueError: If an alternative is malformed or names repeat
        """
        session = self._open(session_id, StepId.SOLUTION_PROPOSAL)

        parsed = [
            alt if isinstance(alt, SolutionAlternative) else SolutionAlternative.model_validate(alt)
            for alt in alternatives
        ]
        names = [alt.name for alt in parsed]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate alternative names: {duplicates}")

        session.alternatives = parsed
        if session.chosen_solution is not None:
            session.chosen_solution = None
            self._add_message(session, "Alternatives replaced; previous choice cleared")

        self.session_store.save(session)
        return session

    def confirm_solution(
        self,
        session_id: str,
        name: str,
        *,
        revised_summary: str | None = None,
    ) -> WorkflowSession:
        """Record the user's confirmed choice, optionally revised.

        Raises:
            ValueError: If name is not one of the recorded alternatives
        """
        session = self._open(session_id, StepId.SOLUTION_PROPOSAL)

        match = next((alt for alt in session.alternatives if alt.name == name), None)
        if match is None:
            available = ", ".join(alt.name for alt in session.alternatives) or "none"
            raise ValueError(f"Unknown alternative '{name}'. Recorded alternatives: {available}")

        if revised_summary is not None and revised_summary.strip():
            match = match.model_copy(update={"summary": revised_summary.strip()})

        session.chosen_solution = match
        self.session_store.save(session)
        return session

    def request_proposals(self, session_id: str) -> str:
        """Ask the collaborator for solution alternatives.

        Raises:
            CollaboratorFailure: If no collaborator is configured or it fails
        """
        session = self._open(session_id, StepId.SOLUTION_PROPOSAL)
        return self._collaborate(session, proposal_sections(session))

    # ========================================================================
    # Step 3: Plan drafting
    # ========================================================================

    def record_outline(
        self, session_id: str, outline: Mapping[str, str | None]
    ) -> WorkflowSession:
        """Record the structural outline, module name -> notes."""
        session = self._open(session_id, StepId.PLAN_DRAFTING)
        session.plan_outline = {
            str(k).strip(): "" if v is None else str(v) for k, v in outline.items()
        }
        self.session_store.save(session)
        return session

    # ========================================================================
    # Step 4: Document generation
    # ========================================================================

    def propose_section(self, session_id: str, module: str, text: str) -> PendingSection:
        """Propose a section and wait for confirmation.

        Oversized text is split and a SectionOverflowWarning is issued; the
        rest is proposed as the next part once this part is confirmed.

        Raises:
            SectionOrderViolation: If module is not next or a proposal is pending
        """
        session = self._open(session_id, StepId.DOCUMENT_GENERATION)
        pending = self.assembler.propose_section(session, module, text)
        if pending.overflow:
            self._add_message(
                session,
                f"'{module}' exceeded {self.word_band.max_words} words; "
                "shorten it, or confirm this part to continue with the rest",
            )
        self.session_store.save(session)
        self._emit(
            WorkflowEventType.SECTION_PROPOSED,
            session,
            module=module,
            metadata={"part": pending.part, "words": pending.word_count},
        )
        return pending

    def draft_section(self, session_id: str, module: str | None = None) -> PendingSection:
        """Have the collaborator draft the next section, then propose it.

        Args:
            module: Module to draft (default: the next one due)

        Raises:
            SectionOrderViolation: If module is not next or a proposal is pending
            CollaboratorFailure: If no collaborator is configured or it fails
        """
        session = self._open(session_id, StepId.DOCUMENT_GENERATION)
        expected = self.assembler.next_module(session)
        module = module or expected
        if session.pending_section is not None:
            raise SectionOrderViolation(
                f"Section for '{session.pending_section.module}' is awaiting confirmation"
            )
        if module is None or module != expected:
            raise SectionOrderViolation(
                f"Section '{module}' requested out of order; next is '{expected}'"
            )

        text = self._collaborate(
            session,
            section_sections(
                session,
                module,
                min_words=self.word_band.min_words,
                max_words=self.word_band.max_words,
            ),
        )
        return self.propose_section(session_id, module, text)

    def confirm_section(self, session_id: str) -> DocumentSection | None:
        """Confirm the pending section.

        Returns:
            The appended section, or None when the module continues

        Raises:
            SectionOrderViolation: If nothing is pending
        """
        session = self._open(session_id, StepId.DOCUMENT_GENERATION)
        pending = session.pending_section
        if pending is None:
            raise SectionOrderViolation("No section is awaiting confirmation")

        section = self.assembler.confirm_section(session, pending)
        self.session_store.save(session)
        self._emit(
            WorkflowEventType.SECTION_CONFIRMED,
            session,
            module=pending.module,
            metadata={"part": pending.part, "complete": section is not None},
        )
        if section is None and session.pending_section is not None:
            continuation = session.pending_section
            self._add_message(
                session,
                f"'{pending.module}' continues with part {continuation.part}; "
                "confirm or reject it",
            )
            self._emit(
                WorkflowEventType.SECTION_PROPOSED,
                session,
                module=continuation.module,
                metadata={"part": continuation.part, "words": continuation.word_count},
            )
        return section

    def reject_section(self, session_id: str, feedback: str) -> RevisionRequest:
        """Reject the pending section; the same module must be re-proposed.

        Raises:
            SectionOrderViolation: If nothing is pending
            ValueError: If feedback is empty
        """
        session = self._open(session_id, StepId.DOCUMENT_GENERATION)
        pending = session.pending_section
        if pending is None:
            raise SectionOrderViolation("No section is awaiting confirmation")

        request = self.assembler.reject_section(session, pending, feedback)
        self.session_store.save(session)
        self._emit(
            WorkflowEventType.SECTION_REJECTED,
            session,
            module=pending.module,
            metadata={"feedback": request.feedback},
        )
        return request

    # ========================================================================
    # Transitions
    # ========================================================================

    def advance(self, session_id: str, *, strict: bool = False) -> AdvanceResult:
        """Leave the open step if its acceptance criterion holds.

        An unsatisfied gate is the normal "not yet" answer: nothing changes
        and the unmet requirements are returned, the same ones on every call
        until new input arrives. With ``strict=True`` it raises instead.

        At the last step the design document is persisted first; the
        session completes only once that write succeeded.

        Raises:
            GateViolationError: If strict and the gate is unsatisfied
            PersistenceFailure: If the design document cannot be written
            StepOrderViolation: If the session is completed or aborted
        """
        session = self._load_active(session_id)
        step_def = get_step(session.current_step)
        result = self.gate.evaluate(step_def, session)

        if step_def.produces_artifact and result.missing == {ARTIFACT}:
            self._persist_artifact(session)
            result = self.gate.evaluate(step_def, session)

        if not result.satisfied:
            if strict:
                raise GateViolationError(step_def.name, result.missing)
            logger.debug(
                "Gate blocked %s at %s: %s",
                session_id, step_def.name, sorted(result.missing),
            )
            self._emit(
                WorkflowEventType.GATE_BLOCKED,
                session,
                metadata={"missing": sorted(result.missing)},
            )
            return self._result(session, advanced=False, missing=result.missing)

        following = next_step(step_def.id)
        if following is None:
            self._transition(session, WorkflowPhase.COMPLETED, SessionStatus.COMPLETED)
        else:
            session.current_step = following.id
            self._transition(session, following.phase, SessionStatus.IN_PROGRESS)
        session.last_error = None

        self.session_store.save(session)
        logger.info("Session %s entered %s", session_id, session.phase.value)

        if following is None:
            self._emit(
                WorkflowEventType.WORKFLOW_COMPLETED,
                session,
                artifact_path=session.artifact.path if session.artifact else None,
            )
        else:
            self._emit(WorkflowEventType.STEP_ENTERED, session)
        return self._result(session, advanced=True)

    # ========================================================================
    # Internal Methods
    # ========================================================================

    def _load_active(self, session_id: str) -> WorkflowSession:
        session = self.session_store.load(session_id)
        session.messages = []
        if session.is_terminal:
            raise StepOrderViolation(
                f"Session {session_id} is {session.phase.value}; start a new session"
            )
        return session

    def _open(self, session_id: str, step: StepId) -> WorkflowSession:
        """Load session and require step to be the open one."""
        session = self._load_active(session_id)
        if session.current_step != step:
            open_step = get_step(session.current_step)
            raise StepOrderViolation(
                f"{get_step(step).name} actions are not allowed while "
                f"{open_step.name} (step {int(open_step.id)}) is open"
            )
        return session

    def _persist_artifact(self, session: WorkflowSession) -> None:
        try:
            record = write_design_document(project_root=self.project_root, session=session)
        except PersistenceFailure as e:
            session.last_error = str(e)
            self.session_store.save(session)
            logger.warning("Design document not persisted for %s: %s", session.session_id, e)
            raise
        session.artifact = record
        self._add_message(session, f"Design document written to {record.path}")
        self._emit(WorkflowEventType.ARTIFACT_PERSISTED, session, artifact_path=record.path)

    def _collaborate(self, session: WorkflowSession, sections: PromptSections) -> str:
        """Run one blocking collaborator call; empty output is a failure."""
        if self.collaborator is None:
            raise CollaboratorFailure("No text collaborator configured")

        metadata = self.collaborator.get_metadata()
        prompt = PromptBuilder.from_sections(sections).build(
            supports_system_prompt=bool(metadata.get("supports_system_prompt"))
        )
        context = {
            "project_root": self.project_root,
            "session_id": session.session_id,
            "step": int(session.current_step),
        }

        try:
            text = self.collaborator.generate(
                prompt["user_prompt"],
                context=context,
                system_prompt=prompt["system_prompt"] or None,
            )
        except CollaboratorFailure as e:
            self._record_error(session, str(e))
            raise
        except Exception as e:
            self._record_error(session, f"Collaborator error: {e}")
            raise CollaboratorFailure(f"Collaborator error: {e}") from e

        if text is None or not text.strip():
            message = f"Collaborator '{metadata.get('name', 'unknown')}' returned no content"
            self._record_error(session, message)
            raise CollaboratorFailure(message)

        return text.strip()

    def _record_error(self, session: WorkflowSession, message: str) -> None:
        session.last_error = message
        self.session_store.save(session)

    def _transition(
        self, session: WorkflowSession, phase: WorkflowPhase, status: SessionStatus
    ) -> None:
        session.phase = phase
        session.status = status
        session.phase_history.append(PhaseTransition(phase=phase, status=status))

    def _result(
        self,
        session: WorkflowSession,
        *,
        advanced: bool,
        missing: frozenset[str] = frozenset(),
    ) -> AdvanceResult:
        return AdvanceResult(
            advanced=advanced,
            step=session.current_step,
            phase=session.phase,
            status=session.status,
            missing=missing,
            artifact_path=session.artifact.path if session.artifact else None,
        )

    def _add_message(self, session: WorkflowSession, message: str) -> None:
        """Add a progress message to the session."""
        session.messages.append(message)

    def _emit(
        self,
        event_type: WorkflowEventType,
        session: WorkflowSession,
        **kwargs: Any,
    ) -> None:
        """Emit a workflow event stamped with the session's position."""
        from planwf.domain.events.event import WorkflowEvent

        self.event_emitter.emit(
            WorkflowEvent(
                event_type=event_type,
                session_id=session.session_id,
                phase=session.phase,
                step=session.current_step,
                **kwargs,
            )
        )
