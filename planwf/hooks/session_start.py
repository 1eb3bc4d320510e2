"""SessionStart hook: inject the bootstrap skill into the host's context.

Reads ``skills/using-x-agent-plugin/SKILL.md`` under the plugin root and
prints the JSON payload the host expects on stdout. A read failure never
fails the hook; an error description is injected instead.
"""

import logging
import os
import sys
from pathlib import Path
from typing import TextIO

from planwf.domain.constants import BOOTSTRAP_SKILL_NAME, BOOTSTRAP_SKILL_PATH, PLUGIN_ROOT_ENV

logger = logging.getLogger(__name__)

PLUGIN_NAME = "x-agent-plugin"
READ_ERROR_TEXT = f"Error reading {BOOTSTRAP_SKILL_NAME} skill"

# Only these five characters are rewritten; everything else passes through.
_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}
_ESCAPE_TABLE = str.maketrans(_ESCAPES)

_PAYLOAD_TEMPLATE = """{{
  "hookSpecificOutput": {{
    "hookEventName": "SessionStart",
    "additionalContext": "{context}"
  }}
}}
"""


def escape_for_json(text: str) -> str:
    """Escape backslash, double quote, newline, carriage return and tab."""
    return text.translate(_ESCAPE_TABLE)


def resolve_plugin_root(plugin_root: Path | None = None) -> Path:
    """Explicit root, else $PLANWF_PLUGIN_ROOT, else the working directory."""
    if plugin_root is not None:
        return plugin_root
    env_root = os.environ.get(PLUGIN_ROOT_ENV)
    if env_root:
        return Path(env_root)
    return Path.cwd()


def read_bootstrap_skill(plugin_root: Path) -> str:
    """Skill text, or the error description if it cannot be read."""
    path = plugin_root / BOOTSTRAP_SKILL_PATH
    try:
        return path.read_text(encoding="utf-8", errors="replace").rstrip("\n")
    except OSError as e:
        logger.debug("Cannot read bootstrap skill %s: %s", path, e)
        return READ_ERROR_TEXT


def build_additional_context(skill_text: str) -> str:
    """Wrap the escaped skill text in the introduction the host shows the assistant."""
    intro = (
        "<EXTREMELY_IMPORTANT>\\n"
        f"You have {PLUGIN_NAME}.\\n\\n"
        f"**Below is the full content of your '{PLUGIN_NAME}:{BOOTSTRAP_SKILL_NAME}' "
        "skill - your introduction to using skills. For all other skills, use the "
        "'Skill' tool:**\\n\\n"
    )
    return f"{intro}{escape_for_json(skill_text)}\\n</EXTREMELY_IMPORTANT>"


def render_payload(plugin_root: Path | None = None) -> str:
    """The complete JSON document for the host."""
    root = resolve_plugin_root(plugin_root)
    context = build_additional_context(read_bootstrap_skill(root))
    return _PAYLOAD_TEMPLATE.format(context=context)


def main(plugin_root: Path | None = None, out: TextIO | None = None) -> int:
    """Print the payload; always succeeds."""
    (out or sys.stdout).write(render_payload(plugin_root))
    return 0


if __name__ == "__main__":
    sys.exit(main())
