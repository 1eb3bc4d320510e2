"""Collaborator backed by Claude Code through the Claude Agent SDK.

The agent may read the project to ground its questions, proposals and
sections, but never writes: planwf persists the only artifact itself.
"""

import asyncio
import shutil
import warnings
from typing import TYPE_CHECKING, Any

from planwf.domain.collaborators.text_collaborator import TextCollaborator
from planwf.domain.errors import CollaboratorFailure

if TYPE_CHECKING:
    from claude_agent_sdk import ClaudeAgentOptions

READ_ONLY_TOOLS = ["Read", "Grep", "Glob"]


class ClaudeCodeCollaborator(TextCollaborator):
    """Text collaborator using the claude-agent-sdk ``query`` API.

    Requires the Claude Code CLI to be installed and authenticated.

    Configuration:
        - model: Model alias or full name (e.g., "sonnet")
        - allowed_tools: Tools the agent may use (default: Read, Grep, Glob)
        - permission_mode: SDK permission mode (default: "plan", read-only)
        - working_dir: Working directory (falls back to context project_root)
        - max_turns: Maximum agent iterations
        - max_budget_usd: Cost limit per call
    """

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        self.config = config or {}
        self._validate_config()

        self._model = self.config.get("model")
        self._allowed_tools = self.config.get("allowed_tools", READ_ONLY_TOOLS)
        self._permission_mode = self.config.get("permission_mode", "plan")
        self._working_dir = self.config.get("working_dir")
        self._max_turns = self.config.get("max_turns")
        self._max_budget_usd = self.config.get("max_budget_usd")

    def _validate_config(self) -> None:
        known_keys = set(self.get_metadata()["config_keys"])
        unknown_keys = set(self.config) - known_keys
        if unknown_keys:
            warnings.warn(
                f"Unknown ClaudeCodeCollaborator config keys ignored: {sorted(unknown_keys)}",
                UserWarning,
                stacklevel=3,
            )

        max_turns = self.config.get("max_turns")
        if max_turns is not None and max_turns < 1:
            raise ValueError("max_turns must be >= 1")

        max_budget = self.config.get("max_budget_usd")
        if max_budget is not None and max_budget <= 0:
            raise ValueError("max_budget_usd must be > 0")

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        return {
            "name": "claude-code",
            "description": "Claude Code agent via the Claude Agent SDK (read-only tools)",
            "requires_config": False,
            "config_keys": [
                "model",
                "allowed_tools",
                "permission_mode",
                "working_dir",
                "max_turns",
                "max_budget_usd",
            ],
            "supports_system_prompt": True,
        }

    def validate(self) -> None:
        """
        Raises:
            CollaboratorFailure: If the SDK or the Claude Code CLI is missing
        """
        try:
            from claude_agent_sdk import query  # noqa: F401
        except ImportError:
            raise CollaboratorFailure(
                "claude-agent-sdk not installed. Install with: pip install claude-agent-sdk"
            )
        if shutil.which("claude") is None:
            raise CollaboratorFailure("Claude Code CLI not found on PATH")

    def generate(
        self,
        prompt: str,
        context: dict[str, Any] | None = None,
        system_prompt: str | None = None,
    ) -> str | None:
        return asyncio.run(self._async_generate(prompt, context, system_prompt))

    async def _async_generate(
        self,
        prompt: str,
        context: dict[str, Any] | None,
        system_prompt: str | None,
    ) -> str:
        try:
            from claude_agent_sdk import query
            from claude_agent_sdk.types import AssistantMessage
        except ImportError:
            raise CollaboratorFailure(
                "claude-agent-sdk not installed. Install with: pip install claude-agent-sdk"
            )

        options = self._build_options(context, system_prompt)
        parts: list[str] = []
        try:
            async for message in query(prompt=prompt, options=options):
                if isinstance(message, AssistantMessage):
                    parts.extend(
                        block.text for block in message.content if hasattr(block, "text")
                    )
        except Exception as e:
            raise CollaboratorFailure(
                f"Claude Agent SDK error ({type(e).__name__}): {e}"
            ) from e

        return "".join(parts)

    def _build_options(
        self,
        context: dict[str, Any] | None,
        system_prompt: str | None,
    ) -> "ClaudeAgentOptions":
        from claude_agent_sdk import ClaudeAgentOptions

        cwd = self._working_dir
        if not cwd and context and context.get("project_root"):
            cwd = str(context["project_root"])

        extra_args: dict[str, str] = {}
        if self._max_budget_usd is not None:
            extra_args["--max-budget-usd"] = str(self._max_budget_usd)

        return ClaudeAgentOptions(
            model=self._model,
            allowed_tools=self._allowed_tools,
            permission_mode=self._permission_mode,
            cwd=cwd,
            max_turns=self._max_turns,
            system_prompt=system_prompt,
            extra_args=extra_args,
        )
