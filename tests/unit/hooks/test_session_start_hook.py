import io
import json
from pathlib import Path

import pytest

from planwf.hooks.session_start import (
    READ_ERROR_TEXT,
    build_additional_context,
    escape_for_json,
    main,
    read_bootstrap_skill,
    render_payload,
    resolve_plugin_root,
)


def _write_skill(root: Path, text: str) -> None:
    path = root / "skills" / "using-x-agent-plugin" / "SKILL.md"
    path.parent.mkdir(parents=True)
    path.write_text(text, encoding="utf-8")


class TestEscapeForJson:
    def test_five_characters_escaped(self) -> None:
        assert escape_for_json('\\"\n\r\t') == '\\\\\\"\\n\\r\\t'

    def test_plain_text_unchanged(self) -> None:
        text = "Plain text, with 'quotes', unicode é and / slashes"
        assert escape_for_json(text) == text

    def test_backslash_escaped_once(self) -> None:
        assert escape_for_json("a\\nb") == "a\\\\nb"

    def test_other_control_characters_pass_through(self) -> None:
        assert escape_for_json("\x0b") == "\x0b"

    @pytest.mark.parametrize("text", ['say "hi"\n', "C:\\path\tx\r\n", ""])
    def test_decodes_back_to_original(self, text: str) -> None:
        assert json.loads(f'"{escape_for_json(text)}"') == text


class TestPluginRoot:
    def test_explicit_root_wins(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("PLANWF_PLUGIN_ROOT", "/elsewhere")
        assert resolve_plugin_root(tmp_path) == tmp_path

    def test_env_root(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("PLANWF_PLUGIN_ROOT", str(tmp_path))
        assert resolve_plugin_root() == tmp_path

    def test_defaults_to_cwd(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert resolve_plugin_root() == tmp_path


class TestPayload:
    def test_skill_text_injected(self, tmp_path: Path) -> None:
        _write_skill(tmp_path, 'Use "planwf".\n\tStep one\n')
        payload = json.loads(render_payload(tmp_path))

        output = payload["hookSpecificOutput"]
        assert output["hookEventName"] == "SessionStart"
        assert output["additionalContext"].startswith("<EXTREMELY_IMPORTANT>\nYou have x-agent-plugin.")
        assert 'Use "planwf".\n\tStep one' in output["additionalContext"]
        assert output["additionalContext"].endswith("\n</EXTREMELY_IMPORTANT>")

    def test_missing_skill_reports_error_text(self, tmp_path: Path) -> None:
        assert read_bootstrap_skill(tmp_path) == READ_ERROR_TEXT
        payload = json.loads(render_payload(tmp_path))
        assert READ_ERROR_TEXT in payload["hookSpecificOutput"]["additionalContext"]

    def test_undecodable_bytes_pass_through(self, tmp_path: Path) -> None:
        _write_skill(tmp_path, "")
        (tmp_path / "skills" / "using-x-agent-plugin" / "SKILL.md").write_bytes(b"Skill \xff text\n")

        text = read_bootstrap_skill(tmp_path)
        assert text == "Skill \ufffd text"
        payload = json.loads(render_payload(tmp_path))
        assert "Skill \ufffd text" in payload["hookSpecificOutput"]["additionalContext"]

    def test_context_is_escaped(self) -> None:
        context = build_additional_context('a "b"')
        assert 'a \\"b\\"' in context

    def test_main_always_succeeds(self, tmp_path: Path) -> None:
        out = io.StringIO()
        assert main(tmp_path, out=out) == 0
        json.loads(out.getvalue())

    def test_bundled_skill_renders(self) -> None:
        repo_root = Path(__file__).resolve().parents[3]
        payload = json.loads(render_payload(repo_root))
        assert READ_ERROR_TEXT not in payload["hookSpecificOutput"]["additionalContext"]
