from datetime import date

import pytest

from planwf.application.section_assembler import (
    SectionAssembler,
    WordBand,
    count_words,
    split_at_word_limit,
)
from planwf.domain.constants import MANDATORY_MODULES
from planwf.domain.errors import SectionOrderViolation, SectionOverflowWarning
from planwf.domain.models import WorkflowSession
from planwf.domain.models.session import SessionStatus


@pytest.fixture
def session() -> WorkflowSession:
    return WorkflowSession(
        session_id="s1",
        task_id="2026-03-14-payment-retries",
        topic="Payment Retries",
        created_on=date(2026, 3, 14),
    )


@pytest.fixture
def assembler() -> SectionAssembler:
    return SectionAssembler()


class TestWordHelpers:
    def test_count_words_ignores_whitespace_runs(self) -> None:
        assert count_words("  one\ttwo\n\nthree  ") == 3
        assert count_words("") == 0

    def test_split_keeps_text_that_fits(self) -> None:
        assert split_at_word_limit("a b c", 3) == ("a b c", "")

    def test_split_at_word_boundary(self) -> None:
        head, rest = split_at_word_limit("alpha beta\ngamma delta", 3)
        assert head == "alpha beta\ngamma"
        assert rest == "delta"

    def test_band_validation(self) -> None:
        with pytest.raises(ValueError):
            WordBand(min_words=0)
        with pytest.raises(ValueError):
            WordBand(min_words=300, max_words=200)


class TestOrdering:
    def test_first_module_is_architecture(self, assembler, session) -> None:
        assert assembler.next_module(session) == "Architecture"

    def test_out_of_order_proposal_rejected(self, assembler, session, make_words) -> None:
        with pytest.raises(SectionOrderViolation):
            assembler.propose_section(session, "Components", make_words(250))
        assert session.pending_section is None

    def test_modules_appended_in_canonical_order(self, assembler, session, make_words) -> None:
        for module in MANDATORY_MODULES:
            pending = assembler.propose_section(session, module, make_words(250))
            assert session.status == SessionStatus.AWAITING_CONFIRMATION
            section = assembler.confirm_section(session, pending)
            assert section is not None and section.module == module

        assert session.confirmed_modules == list(MANDATORY_MODULES)
        assert assembler.is_complete(session)
        assert assembler.next_module(session) is None

    def test_no_proposal_after_completion(self, assembler, session, make_words) -> None:
        for module in MANDATORY_MODULES:
            assembler.confirm_section(session, assembler.propose_section(session, module, "text"))
        with pytest.raises(SectionOrderViolation):
            assembler.propose_section(session, "Architecture", "again")

    def test_second_proposal_while_pending_rejected(self, assembler, session) -> None:
        assembler.propose_section(session, "Architecture", "draft")
        with pytest.raises(SectionOrderViolation):
            assembler.propose_section(session, "Architecture", "another draft")

    def test_empty_text_rejected(self, assembler, session) -> None:
        with pytest.raises(ValueError):
            assembler.propose_section(session, "Architecture", "   ")


class TestConfirmReject:
    def test_confirm_without_pending(self, assembler, session) -> None:
        pending = assembler.propose_section(session, "Architecture", "draft")
        assembler.confirm_section(session, pending)
        with pytest.raises(SectionOrderViolation):
            assembler.confirm_section(session, pending)

    def test_reject_requires_reproposal(self, assembler, session) -> None:
        pending = assembler.propose_section(session, "Architecture", "first draft")
        request = assembler.reject_section(session, pending, " too vague ")

        assert request.feedback == "too vague"
        assert request.rejected_text == "first draft"
        assert session.pending_section is None
        assert session.document_sections == []
        assert assembler.next_module(session) == "Architecture"
        assert session.status == SessionStatus.IN_PROGRESS

    def test_reject_needs_feedback(self, assembler, session) -> None:
        pending = assembler.propose_section(session, "Architecture", "draft")
        with pytest.raises(ValueError):
            assembler.reject_section(session, pending, "  ")
        assert session.pending_section == pending

    def test_short_section_is_accepted(self, assembler, session) -> None:
        # The band is soft at the low end
        pending = assembler.propose_section(session, "Architecture", "short")
        assert not pending.overflow
        assert assembler.confirm_section(session, pending).text == "short"


class TestOverflow:
    def test_overflow_warns_and_splits(self, assembler, session, make_words) -> None:
        with pytest.warns(SectionOverflowWarning):
            pending = assembler.propose_section(session, "Architecture", make_words(450))

        assert pending.overflow
        assert pending.word_count == 300
        assert count_words(pending.remainder) == 150
        assert pending.part == 1

    def test_confirm_proposes_remainder_as_next_part(self, assembler, session, make_words) -> None:
        text = make_words(450)
        with pytest.warns(SectionOverflowWarning):
            first = assembler.propose_section(session, "Architecture", text)

        assert assembler.confirm_section(session, first) is None
        second = session.pending_section
        assert second is not None
        assert second.module == "Architecture"
        assert second.part == 2
        assert not second.overflow
        assert session.document_sections == []

        section = assembler.confirm_section(session, second)
        assert section.module == "Architecture"
        assert count_words(section.text) == 450
        assert session.open_parts == []
        assert assembler.next_module(session) == "Components"

    def test_rejecting_continuation_keeps_confirmed_part(self, assembler, session, make_words) -> None:
        with pytest.warns(SectionOverflowWarning):
            first = assembler.propose_section(session, "Architecture", make_words(400))
        assembler.confirm_section(session, first)

        assembler.reject_section(session, session.pending_section, "rework the ending")
        assert len(session.open_parts) == 1

        second = assembler.propose_section(session, "Architecture", "better ending")
        assert second.part == 2
        section = assembler.confirm_section(session, second)
        assert section.text.endswith("better ending")
        assert count_words(section.text) == 302

    def test_custom_band(self, session) -> None:
        assembler = SectionAssembler(WordBand(min_words=2, max_words=5))
        with pytest.warns(SectionOverflowWarning):
            pending = assembler.propose_section(session, "Architecture", "a b c d e f g")
        assert pending.text == "a b c d e"
        assert pending.remainder == "f g"
