"""ClaudeCodeCollaborator tests with a mocked claude-agent-sdk query."""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from planwf.domain.collaborators import ClaudeCodeCollaborator, CollaboratorFactory
from planwf.domain.errors import CollaboratorFailure


def _assistant_message(*texts: str):
    from claude_agent_sdk.types import AssistantMessage

    blocks = []
    for text in texts:
        block = Mock()
        block.text = text
        blocks.append(block)
    message = Mock(spec=AssistantMessage)
    message.content = blocks
    return message


class TestConfig:
    def test_registered(self) -> None:
        collaborator = CollaboratorFactory.create("claude-code", {"model": "sonnet"})
        assert isinstance(collaborator, ClaudeCodeCollaborator)

    def test_read_only_defaults(self) -> None:
        options = ClaudeCodeCollaborator()._build_options(context=None, system_prompt=None)
        assert options.allowed_tools == ["Read", "Grep", "Glob"]
        assert options.permission_mode == "plan"
        assert options.extra_args == {}

    def test_cwd_from_project_root(self, tmp_path: Path) -> None:
        options = ClaudeCodeCollaborator()._build_options(
            context={"project_root": tmp_path}, system_prompt="Be brief"
        )
        assert options.cwd == str(tmp_path)
        assert options.system_prompt == "Be brief"

    def test_budget_becomes_cli_flag(self) -> None:
        options = ClaudeCodeCollaborator({"max_budget_usd": 0.5})._build_options(None, None)
        assert options.extra_args == {"--max-budget-usd": "0.5"}

    @pytest.mark.parametrize("config", [{"max_turns": 0}, {"max_budget_usd": 0}])
    def test_invalid_values(self, config: dict) -> None:
        with pytest.raises(ValueError):
            ClaudeCodeCollaborator(config)

    def test_unknown_key_warns(self) -> None:
        with pytest.warns(UserWarning, match="temperature"):
            ClaudeCodeCollaborator({"temperature": 0.2})

    def test_validate_requires_cli(self, monkeypatch) -> None:
        monkeypatch.setattr(
            "planwf.domain.collaborators.claude_code_collaborator.shutil.which",
            lambda name: None,
        )
        with pytest.raises(CollaboratorFailure, match="CLI not found"):
            ClaudeCodeCollaborator().validate()


class TestGenerate:
    def test_concatenates_text_blocks(self) -> None:
        messages = [_assistant_message("1. Which provider? "), _assistant_message("2. Which SLA?")]

        async def mock_query(*args, **kwargs):
            for message in messages:
                yield message

        with patch("claude_agent_sdk.query", side_effect=mock_query) as mock_q:
            text = ClaudeCodeCollaborator().generate("Ask questions")

        assert text == "1. Which provider? 2. Which SLA?"
        assert mock_q.call_args.kwargs["prompt"] == "Ask questions"

    def test_ignores_non_assistant_messages(self) -> None:
        async def mock_query(*args, **kwargs):
            yield Mock(text="system noise")
            yield _assistant_message("answer")

        with patch("claude_agent_sdk.query", side_effect=mock_query):
            assert ClaudeCodeCollaborator().generate("p") == "answer"

    def test_sdk_error_wrapped(self) -> None:
        async def mock_query(*args, **kwargs):
            raise RuntimeError("process exited")
            yield  # pragma: no cover

        with patch("claude_agent_sdk.query", side_effect=mock_query):
            with pytest.raises(CollaboratorFailure, match="RuntimeError"):
                ClaudeCodeCollaborator().generate("p")
