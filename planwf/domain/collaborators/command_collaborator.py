"""Collaborator that pipes prompts through an external command.

Any CLI that reads a prompt on stdin and prints the answer on stdout works,
e.g. ``["claude", "-p"]`` or ``["llm", "-m", "some-model"]``.
"""

import asyncio
import logging
import shutil
import warnings
from typing import Any

from planwf.domain.errors import CollaboratorFailure
from planwf.domain.collaborators.text_collaborator import TextCollaborator

logger = logging.getLogger(__name__)


class CommandCollaborator(TextCollaborator):
    """Runs a configured command per request.

    Configuration:
        - command: argv list, first element is the executable (required)
        - working_dir: Working directory (falls back to context project_root)
        - timeout: Seconds before the process is killed (default: none, the
          caller owns cancellation)
    """

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        self.config = config or {}
        self._validate_config()

        self._command: list[str] = list(self.config.get("command") or [])
        self._working_dir = self.config.get("working_dir")
        self._timeout = self.config.get("timeout")

    def _validate_config(self) -> None:
        """Validate configuration and warn on unknown keys.

        Raises:
            ValueError: If config values are invalid
        """
        known_keys = set(self.get_metadata()["config_keys"])
        unknown_keys = set(self.config.keys()) - known_keys
        if unknown_keys:
            warnings.warn(
                f"Unknown CommandCollaborator config keys ignored: {sorted(unknown_keys)}",
                UserWarning,
                stacklevel=3,
            )

        command = self.config.get("command")
        if command is not None:
            if not isinstance(command, list) or not all(isinstance(a, str) for a in command):
                raise ValueError("command must be a list of strings")

        timeout = self.config.get("timeout")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be > 0")

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        return {
            "name": "command",
            "description": "External command (prompt on stdin, text on stdout)",
            "requires_config": True,
            "config_keys": ["command", "working_dir", "timeout"],
            "supports_system_prompt": False,
        }

    def validate(self) -> None:
        """Verify the command is configured and on PATH.

        Raises:
            CollaboratorFailure: If no command is configured or it cannot be found
        """
        if not self._command:
            raise CollaboratorFailure(
                "Command collaborator requires 'command' in collaborator_config"
            )
        if shutil.which(self._command[0]) is None:
            raise CollaboratorFailure(f"Collaborator command not found: {self._command[0]}")

    def generate(
        self,
        prompt: str,
        context: dict[str, Any] | None = None,
        system_prompt: str | None = None,
    ) -> str | None:
        full_prompt = prompt
        if system_prompt:
            full_prompt = f"{system_prompt}\n\n{prompt}"
        return asyncio.run(self._async_generate(full_prompt, context))

    async def _async_generate(self, prompt: str, context: dict[str, Any] | None) -> str:
        if not self._command:
            raise CollaboratorFailure(
                "Command collaborator requires 'command' in collaborator_config"
            )

        cwd = self._working_dir
        if not cwd and context and context.get("project_root"):
            cwd = str(context["project_root"])

        try:
            process = await asyncio.create_subprocess_exec(
                *self._command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
            )
        except FileNotFoundError:
            raise CollaboratorFailure(f"Collaborator command not found: {self._command[0]}")

        try:
            stdout_data, stderr_data = await asyncio.wait_for(
                process.communicate(prompt.encode("utf-8")),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise CollaboratorFailure(
                f"Collaborator command timed out after {self._timeout}s"
            )

        if stderr_data:
            logger.debug(f"Collaborator stderr: {stderr_data.decode(errors='replace')}")

        if process.returncode != 0:
            stderr = stderr_data.decode(errors="replace") if stderr_data else ""
            raise CollaboratorFailure(
                f"Collaborator command failed (exit {process.returncode}): {stderr}"
            )

        return stdout_data.decode("utf-8", errors="replace")
