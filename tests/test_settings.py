"""Tests for cc_blocks.settings — XDG JSON settings file."""

import json
import logging
import os

import cc_blocks.settings as settings


def test_config_path_under_xdg(isolated_config):
    assert settings.get_config_path() == isolated_config / "cc-blocks" / "settings.json"


def test_missing_file_is_empty():
    assert settings.load_settings() == {}
    assert settings.load_setting("anything", "fallback") == "fallback"


def test_save_and_load_round_trip():
    settings.save_settings({"code_theme": "dracula"})
    assert settings.load_settings() == {"code_theme": "dracula"}
    assert settings.get_config_path().read_text(encoding="utf-8").endswith("\n")


def test_save_setting_merges():
    settings.save_setting("a", 1)
    settings.save_setting("b", 2)
    assert settings.load_settings() == {"a": 1, "b": 2}


def test_save_leaves_no_temp_files():
    settings.save_setting("a", 1)
    files = list(settings.get_config_path().parent.iterdir())
    assert [f.name for f in files] == ["settings.json"]


def test_corrupt_file_is_ignored_with_warning(caplog):
    path = settings.get_config_path()
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="cc_blocks.settings"):
        assert settings.load_settings() == {}
    assert "unreadable settings file" in caplog.text


def test_non_object_file_is_ignored():
    path = settings.get_config_path()
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps([1, 2]), encoding="utf-8")
    assert settings.load_settings() == {}


def test_project_root_defaults_to_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert settings.load_project_root() == os.getcwd()
    settings.save_project_root("/work/app")
    assert settings.load_project_root() == "/work/app"


def test_code_theme_default():
    assert settings.load_code_theme() == settings.DEFAULT_CODE_THEME
    settings.save_setting("code_theme", "github-dark")
    assert settings.load_code_theme() == "github-dark"


def test_preview_lines():
    assert settings.load_preview_lines() is None
    settings.save_setting("preview_lines", "12")
    assert settings.load_preview_lines() == 12
    settings.save_setting("preview_lines", 0)
    assert settings.load_preview_lines() == 1
    settings.save_setting("preview_lines", "lots")
    assert settings.load_preview_lines() is None
