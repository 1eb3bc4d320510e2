"""Prompt builder for collaborator requests.

Implements the Builder pattern for assembling prompts from PromptSections,
plus the step-specific prompts the controller sends.
"""
from typing import Self

from planwf.domain.constants import MANDATORY_MODULES, MAX_ALTERNATIVES, MIN_ALTERNATIVES
from planwf.domain.models.prompt_sections import PromptSections
from planwf.domain.models.session import WorkflowSession

PLANNER_ROLE = (
    "You are a senior engineer helping plan a code change. You work one step "
    "at a time and never skip ahead of what the user has confirmed."
)


class PromptBuilder:
    """Builds prompt content from structured sections.

    Supports fluent interface for setting sections and builds
    user_prompt and system_prompt based on collaborator capabilities.
    """

    def __init__(self) -> None:
        self._role: str | None = None
        self._background: dict[str, str] = {}
        self._context: str | None = None
        self._task: str | None = None
        self._constraints: str | None = None
        self._expected_outputs: list[str] = []
        self._output_format: str | None = None

    @classmethod
    def from_sections(cls, sections: PromptSections) -> Self:
        builder = cls()
        builder.with_role(sections.role)
        builder.with_background(sections.background)
        builder.with_context(sections.context)
        builder.with_task(sections.task)
        builder.with_constraints(sections.constraints)
        builder.with_expected_outputs(sections.expected_outputs)
        builder.with_output_format(sections.output_format)
        return builder

    def with_role(self, role: str | None) -> Self:
        self._role = role
        return self

    def with_background(self, background: dict[str, str]) -> Self:
        """Set labelled background facts (already-confirmed decisions)."""
        self._background = {k: v for k, v in (background or {}).items() if v}
        return self

    def with_context(self, context: str | None) -> Self:
        self._context = context
        return self

    def with_task(self, task: str | None) -> Self:
        self._task = task
        return self

    def with_constraints(self, constraints: str | None) -> Self:
        self._constraints = constraints
        return self

    def with_expected_outputs(self, outputs: list[str]) -> Self:
        self._expected_outputs = list(outputs) if outputs else []
        return self

    def with_output_format(self, output_format: str | None) -> Self:
        self._output_format = output_format
        return self

    def build(self, supports_system_prompt: bool = False) -> dict[str, str]:
        """Build the final prompt.

        Args:
            supports_system_prompt: Whether to separate role/constraints into system_prompt

        Returns:
            dict with keys "user_prompt" and "system_prompt"

        Raises:
            ValueError: If no task was set
        """
        if not self._task:
            raise ValueError("Prompt task is required")

        system_sections: list[str] = []
        user_sections: list[str] = []

        role_target = system_sections if supports_system_prompt else user_sections
        if self._role:
            role_target.append(f"## Role\n\n{self._role}")

        background = self._render_background()
        if background:
            user_sections.append(background)

        if self._context:
            user_sections.append(f"## Context\n\n{self._context}")

        user_sections.append(f"## Task\n\n{self._task}")

        if self._constraints:
            role_target.append(f"## Constraints\n\n{self._constraints}")

        if self._expected_outputs:
            lines = ["## Expected Outputs", ""]
            lines.extend(f"- {output}" for output in self._expected_outputs)
            user_sections.append("\n".join(lines))

        if self._output_format:
            user_sections.append(f"## Output Format\n\n{self._output_format}")

        return {
            "system_prompt": "\n\n".join(system_sections),
            "user_prompt": "\n\n".join(user_sections),
        }

    def _render_background(self) -> str:
        if not self._background:
            return ""
        lines = ["## Background", ""]
        for label, value in self._background.items():
            lines.append(f"- **{label}**: {value}")
        return "\n".join(lines)


def _session_background(session: WorkflowSession) -> dict[str, str]:
    background = {
        "Topic": session.topic,
        "Purpose": session.clarified_purpose or "",
        "Constraints": session.clarified_constraints or "",
        "Success criteria": session.clarified_success_criteria or "",
    }
    if session.chosen_solution is not None:
        chosen = session.chosen_solution
        background["Chosen solution"] = (
            f"{chosen.name}: {chosen.summary}" if chosen.summary else chosen.name
        )
    return background


def clarification_sections(session: WorkflowSession) -> PromptSections:
    return PromptSections(
        role=PLANNER_ROLE,
        background=_session_background(session),
        context=session.task_context,
        task=(
            "Ask the clarifying questions still needed to pin down the purpose, "
            "the constraints and the success criteria of this change."
        ),
        constraints="Ask questions only. Do not propose solutions yet.",
        output_format="A numbered list of questions.",
    )


def proposal_sections(session: WorkflowSession) -> PromptSections:
    return PromptSections(
        role=PLANNER_ROLE,
        background=_session_background(session),
        context=session.task_context,
        task=(
            f"Propose {MIN_ALTERNATIVES} to {MAX_ALTERNATIVES} alternative solutions "
            "and recommend exactly one."
        ),
        constraints="Stay within the confirmed constraints.",
        expected_outputs=[
            "For each alternative: name, summary, advantages, disadvantages, applicable scenarios",
            "Which alternative you recommend, and why",
        ],
    )


def section_sections(
    session: WorkflowSession,
    module: str,
    *,
    min_words: int,
    max_words: int,
) -> PromptSections:
    """Prompt for drafting one design document section.

    Includes the outline notes for module and the latest rejection feedback
    for it, if any.
    """
    background = _session_background(session)
    notes = session.plan_outline.get(module)
    if notes:
        background[f"Outline for {module}"] = notes

    feedback = [r.feedback for r in session.revision_requests if r.module == module]
    context = None
    if feedback:
        context = f"The previous draft of this section was rejected: {feedback[-1]}"
    elif session.open_parts:
        context = "Continue from the confirmed part:\n\n" + session.open_parts[-1]

    return PromptSections(
        role=PLANNER_ROLE,
        background=background,
        context=context,
        task=f"Write the '{module}' section of the design document.",
        constraints=(
            f"Write between {min_words} and {max_words} words. Cover only "
            f"'{module}'; the document's modules are {', '.join(MANDATORY_MODULES)}."
        ),
        output_format="Markdown body text without the section heading.",
    )
