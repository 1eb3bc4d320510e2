from pathlib import Path

import pytest

from planwf.application.config_loader import ConfigLoadError, load_config


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class TestLoadConfig:
    def test_defaults(self, tmp_path: Path) -> None:
        cfg = load_config(project_root=tmp_path / "proj", user_home=tmp_path / "home")
        assert cfg.collaborator == "manual"
        assert cfg.section_min_words == 200
        assert cfg.section_max_words == 300
        assert cfg.sessions_root == tmp_path / "proj" / ".planwf" / "sessions"

    def test_project_overrides_user(self, tmp_path: Path) -> None:
        home = tmp_path / "home"
        proj = tmp_path / "proj"
        _write(
            home / ".planwf" / "config.yml",
            "collaborator: command\ncollaborator_config:\n  command: [llm]\n  timeout: 60\n",
        )
        _write(proj / ".planwf" / "config.yml", "collaborator_config:\n  timeout: 120\n")

        cfg = load_config(project_root=proj, user_home=home)
        assert cfg.collaborator == "command"
        assert cfg.collaborator_config == {"command": ["llm"], "timeout": 120}

    def test_overrides_win_and_none_is_ignored(self, tmp_path: Path) -> None:
        proj = tmp_path / "proj"
        _write(proj / ".planwf" / "config.yml", "section_max_words: 400\n")
        cfg = load_config(
            project_root=proj,
            user_home=tmp_path / "home",
            overrides={"section_max_words": 350, "collaborator": None},
        )
        assert cfg.section_max_words == 350
        assert cfg.collaborator == "manual"

    def test_absolute_sessions_root_kept(self, tmp_path: Path) -> None:
        proj = tmp_path / "proj"
        _write(proj / ".planwf" / "config.yml", f"sessions_root: {tmp_path / 'elsewhere'}\n")
        cfg = load_config(project_root=proj, user_home=tmp_path / "home")
        assert cfg.sessions_root == tmp_path / "elsewhere"

    def test_empty_file_is_defaults(self, tmp_path: Path) -> None:
        proj = tmp_path / "proj"
        _write(proj / ".planwf" / "config.yml", "")
        assert load_config(project_root=proj, user_home=tmp_path / "home").collaborator == "manual"


class TestConfigErrors:
    def test_malformed_yaml(self, tmp_path: Path) -> None:
        proj = tmp_path / "proj"
        _write(proj / ".planwf" / "config.yml", "collaborator: [unclosed\n")
        with pytest.raises(ConfigLoadError, match="Malformed YAML") as exc_info:
            load_config(project_root=proj, user_home=tmp_path / "home")
        assert exc_info.value.path == proj / ".planwf" / "config.yml"

    def test_root_must_be_mapping(self, tmp_path: Path) -> None:
        proj = tmp_path / "proj"
        _write(proj / ".planwf" / "config.yml", "- a\n- b\n")
        with pytest.raises(ConfigLoadError, match="mapping"):
            load_config(project_root=proj, user_home=tmp_path / "home")

    def test_unknown_key(self, tmp_path: Path) -> None:
        proj = tmp_path / "proj"
        _write(proj / ".planwf" / "config.yml", "colaborator: command\n")
        with pytest.raises(ConfigLoadError, match="Invalid configuration"):
            load_config(project_root=proj, user_home=tmp_path / "home")

    def test_band_must_be_ordered(self, tmp_path: Path) -> None:
        proj = tmp_path / "proj"
        _write(proj / ".planwf" / "config.yml", "section_min_words: 400\n")
        with pytest.raises(ConfigLoadError):
            load_config(project_root=proj, user_home=tmp_path / "home")
