"""Tests for the TOML settings loader."""

from pathlib import Path

import pytest

from stagepilot.settings import CONFIG_ENV_VAR, Settings, SettingsError


def test_missing_file_uses_defaults(tmp_path: Path) -> None:
    settings = Settings.load(tmp_path / "missing.toml")
    assert settings.source is None
    assert settings.notes_template == "notes_default_cs"
    assert settings.data_root == Path("data")
    assert settings.log_level == "INFO"


def test_file_values_override_defaults(tmp_path: Path) -> None:
    path = tmp_path / "stagepilot.toml"
    path.write_text(
        '[data]\nroot = "records"\n\n[stageplan]\ntext_size_pt = 10\n\n[logging]\nlevel = "debug"\n',
        encoding="utf-8",
    )
    settings = Settings.load(path)
    assert settings.data_root == tmp_path / "records"
    assert settings["stageplan"]["line_height"] == 1.3
    assert settings.log_level == "DEBUG"

    layout = settings.layout_settings()
    assert layout.text_size_pt == 10.0
    assert layout.page_height_mm == 297.0


def test_env_var_selects_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "custom.toml"
    path.write_text('[document]\noutput_dir = "riders"\n', encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    assert Settings.load().output_dir == Path("riders")


def test_out_of_bounds_value() -> None:
    with pytest.raises(SettingsError, match="out of bounds"):
        Settings({"stageplan": {"text_size_pt": 30}})


def test_non_numeric_value() -> None:
    with pytest.raises(SettingsError, match="must be a number"):
        Settings({"stageplan": {"line_height": "tall"}})


def test_unknown_log_level() -> None:
    with pytest.raises(SettingsError, match="Unknown logging level"):
        Settings({"logging": {"level": "chatty"}})


def test_section_must_be_table() -> None:
    with pytest.raises(SettingsError, match=r"\[data\] must be a table"):
        Settings({"data": "records"})


def test_broken_toml(tmp_path: Path) -> None:
    path = tmp_path / "broken.toml"
    path.write_text("[stageplan\n", encoding="utf-8")
    with pytest.raises(SettingsError, match="Failed to load settings"):
        Settings.load(path)


def test_get_with_default() -> None:
    settings = Settings()
    assert settings.get("document", "output_dir") == "out"
    assert settings.get("document", "nothing", "fallback") == "fallback"
