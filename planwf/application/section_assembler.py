"""Incremental, confirmed assembly of the design document.

Each module gets exactly one confirmed section, appended in canonical order.
A draft that overflows the word band is split: the first part is proposed,
and once it is confirmed the rest is proposed as the next part of the same
module. The module's section is appended only after its last part is
confirmed.
"""

import logging
import re
import warnings
from dataclasses import dataclass

from planwf.domain.constants import MANDATORY_MODULES, SECTION_MAX_WORDS, SECTION_MIN_WORDS
from planwf.domain.errors import SectionOrderViolation, SectionOverflowWarning
from planwf.domain.models.document import DocumentSection, PendingSection, RevisionRequest
from planwf.domain.models.session import SessionStatus, WorkflowSession

logger = logging.getLogger(__name__)

_WORD = re.compile(r"\S+")


@dataclass(frozen=True, slots=True)
class WordBand:
    """Soft size band for a proposed section, in words."""

    min_words: int = SECTION_MIN_WORDS
    max_words: int = SECTION_MAX_WORDS

    def __post_init__(self) -> None:
        if self.min_words < 1:
            raise ValueError("min_words must be >= 1")
        if self.max_words < self.min_words:
            raise ValueError("max_words must be >= min_words")


def count_words(text: str) -> int:
    return len(_WORD.findall(text))


def split_at_word_limit(text: str, max_words: int) -> tuple[str, str]:
    """Split text after max_words words, keeping original spacing in the head.

    Returns:
        (head, remainder); remainder is empty when text fits
    """
    matches = list(_WORD.finditer(text))
    if len(matches) <= max_words:
        return text.strip(), ""
    cut = matches[max_words - 1].end()
    return text[:cut].strip(), text[cut:].strip()


class SectionAssembler:
    """Mediates the propose / confirm / reject loop for document sections.

    Operates on the session in memory; the controller owns persistence.
    """

    def __init__(self, band: WordBand | None = None) -> None:
        self.band = band or WordBand()

    def next_module(self, session: WorkflowSession) -> str | None:
        """The module whose section must be confirmed next, None when done."""
        confirmed = len(session.document_sections)
        if confirmed >= len(MANDATORY_MODULES):
            return None
        return MANDATORY_MODULES[confirmed]

    def is_complete(self, session: WorkflowSession) -> bool:
        return session.confirmed_modules == list(MANDATORY_MODULES)

    def propose_section(
        self, session: WorkflowSession, module: str, draft_text: str
    ) -> PendingSection:
        """Register a draft for module and wait for confirmation.

        Raises:
            SectionOrderViolation: If module is not next, or a proposal is pending
            ValueError: If draft_text is empty
        """
        if session.pending_section is not None:
            raise SectionOrderViolation(
                f"Section for '{session.pending_section.module}' is awaiting "
                "confirmation; confirm or reject it first"
            )

        expected = self.next_module(session)
        if expected is None:
            raise SectionOrderViolation("All sections are already confirmed")
        if module != expected:
            raise SectionOrderViolation(
                f"Section '{module}' proposed out of order; next is '{expected}'"
            )

        if not draft_text or not draft_text.strip():
            raise ValueError("Section text cannot be empty")

        head, remainder = split_at_word_limit(draft_text, self.band.max_words)
        overflow = bool(remainder)
        if overflow:
            warnings.warn(
                f"Section '{module}' has {count_words(draft_text)} words, above the "
                f"{self.band.max_words}-word band; proposing the first "
                f"{self.band.max_words} words, the rest continues in the next part",
                SectionOverflowWarning,
                stacklevel=2,
            )

        pending = PendingSection(
            module=module,
            text=head,
            remainder=remainder,
            word_count=count_words(head),
            part=len(session.open_parts) + 1,
            overflow=overflow,
        )
        session.pending_section = pending
        session.status = SessionStatus.AWAITING_CONFIRMATION
        logger.debug(
            "Proposed %s part %d (%d words)", module, pending.part, pending.word_count
        )
        return pending

    def confirm_section(
        self, session: WorkflowSession, pending: PendingSection
    ) -> DocumentSection | None:
        """Confirm the pending proposal.

        When the proposal was split, the confirmed part is kept and the
        remainder is proposed straight away as the next part of the same
        module.

        Returns:
            The appended DocumentSection, or None when the module continues
            with another part

        Raises:
            SectionOrderViolation: If pending is not the session's open proposal
        """
        self._require_current(session, pending)

        session.pending_section = None
        session.status = SessionStatus.IN_PROGRESS

        if pending.has_continuation:
            session.open_parts = [*session.open_parts, pending.text]
            self.propose_section(session, pending.module, pending.remainder)
            return None

        text = "\n\n".join([*session.open_parts, pending.text])
        section = DocumentSection(module=pending.module, text=text)
        session.document_sections = [*session.document_sections, section]
        session.open_parts = []
        return section

    def reject_section(
        self, session: WorkflowSession, pending: PendingSection, feedback: str
    ) -> RevisionRequest:
        """Discard the pending proposal and record why.

        Confirmed parts of a continued module are kept; only the rejected
        part must be proposed again.

        Raises:
            SectionOrderViolation: If pending is not the session's open proposal
            ValueError: If feedback is empty
        """
        self._require_current(session, pending)
        if not feedback or not feedback.strip():
            raise ValueError("Rejection feedback cannot be empty or whitespace")

        request = RevisionRequest(
            module=pending.module,
            feedback=feedback.strip(),
            rejected_text=pending.text,
        )
        session.revision_requests = [*session.revision_requests, request]
        session.pending_section = None
        session.status = SessionStatus.IN_PROGRESS
        return request

    def _require_current(self, session: WorkflowSession, pending: PendingSection) -> None:
        if session.pending_section is None:
            raise SectionOrderViolation("No section is awaiting confirmation")
        if session.pending_section != pending:
            raise SectionOrderViolation(
                f"Section '{pending.module}' part {pending.part} is not the pending proposal"
            )
