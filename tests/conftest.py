from datetime import date
from pathlib import Path
from typing import Any

import pytest

from planwf.application.workflow_controller import WorkflowController
from planwf.domain.collaborators import CollaboratorFactory, TextCollaborator
from planwf.domain.constants import MANDATORY_MODULES
from planwf.domain.persistence.session_store import SessionStore

SESSION_DATE = date(2026, 3, 14)


def words(n: int, word: str = "lorem") -> str:
    """Text of exactly n words."""
    return " ".join(f"{word}{i}" for i in range(n))


GOOD_ALTERNATIVES: list[dict[str, Any]] = [
    {
        "name": "Queue",
        "summary": "Retry through a durable queue",
        "advantages": ["durable"],
        "disadvantages": ["new infrastructure"],
        "applicable_scenarios": ["high volume"],
        "recommended": True,
    },
    {
        "name": "Inline",
        "summary": "Retry inside the request",
        "advantages": ["simple"],
        "disadvantages": ["slow requests"],
        "applicable_scenarios": ["low volume"],
    },
]

FULL_OUTLINE = {module: f"{module} notes" for module in MANDATORY_MODULES}


class FakeCollaborator(TextCollaborator):
    """Returns scripted responses in order and records prompts."""

    responses: list[str | None] = []
    prompts: list[str] = []
    system_prompts: list[str | None] = []

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        return {
            "name": "fake",
            "description": "Fake collaborator for testing",
            "requires_config": False,
            "config_keys": [],
            "supports_system_prompt": True,
        }

    def validate(self) -> None:
        pass  # Always valid

    def generate(
        self,
        prompt: str,
        context: dict[str, Any] | None = None,
        system_prompt: str | None = None,
    ) -> str | None:
        self.prompts.append(prompt)
        self.system_prompts.append(system_prompt)
        if not self.responses:
            return None
        return self.responses.pop(0)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Prevent tests from picking up developer machine env vars."""
    monkeypatch.delenv("PLANWF_PLUGIN_ROOT", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture(autouse=True)
def _register_test_collaborators():
    """Register the fake collaborator and restore the registry afterward."""
    original_registry = dict(CollaboratorFactory._registry)
    CollaboratorFactory.register("fake", FakeCollaborator)
    FakeCollaborator.responses = []
    FakeCollaborator.prompts = []
    FakeCollaborator.system_prompts = []

    yield

    CollaboratorFactory._registry.clear()
    CollaboratorFactory._registry.update(original_registry)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def session_store(project_root: Path) -> SessionStore:
    """Isolated session store; never writes into the real repo."""
    return SessionStore(sessions_root=project_root / ".planwf" / "sessions")


@pytest.fixture
def fake_collaborator() -> FakeCollaborator:
    return FakeCollaborator()


@pytest.fixture
def controller(session_store: SessionStore, project_root: Path, fake_collaborator) -> WorkflowController:
    return WorkflowController(
        session_store=session_store,
        project_root=project_root,
        collaborator=fake_collaborator,
    )


class WorkflowDriver:
    """Moves sessions through steps with valid input."""

    def __init__(self, controller: WorkflowController) -> None:
        self.controller = controller

    def start(self, topic: str = "Payment Retries") -> str:
        return self.controller.start(topic, created_on=SESSION_DATE).session_id

    def clarify(self, session_id: str) -> None:
        self.controller.record_clarification(
            session_id,
            purpose="Retry failed payments",
            constraints="No new database",
            success_criteria="95% of transient failures recovered",
        )
        self.controller.confirm_no_ambiguity(session_id)

    def propose(self, session_id: str) -> None:
        self.controller.record_alternatives(session_id, GOOD_ALTERNATIVES)
        self.controller.confirm_solution(session_id, "Queue")

    def outline(self, session_id: str) -> None:
        self.controller.record_outline(session_id, FULL_OUTLINE)

    def write_sections(self, session_id: str, n_words: int = 250) -> None:
        for module in MANDATORY_MODULES:
            self.controller.propose_section(session_id, module, words(n_words, module.lower()[:4]))
            self.controller.confirm_section(session_id)

    def to_step(self, step: int, topic: str = "Payment Retries") -> str:
        """Start a session and advance it until step is open."""
        session_id = self.start(topic)
        stages = [self.clarify, self.propose, self.outline]
        for stage in stages[: step - 1]:
            stage(session_id)
            assert self.controller.advance(session_id).advanced
        return session_id


@pytest.fixture
def driver(controller: WorkflowController) -> WorkflowDriver:
    return WorkflowDriver(controller)


@pytest.fixture
def make_words():
    """Factory for section text of an exact word count."""
    return words


@pytest.fixture
def alternatives() -> list[dict[str, Any]]:
    return [dict(alt) for alt in GOOD_ALTERNATIVES]


@pytest.fixture
def full_outline() -> dict[str, str]:
    return dict(FULL_OUTLINE)
