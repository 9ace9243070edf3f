"""Pytest configuration and shared fixtures for cc-blocks tests."""

import pytest

import cc_blocks.io.logging_setup


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point settings and log files at a per-test temp dir."""
    config_home = tmp_path / "config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setenv("CC_BLOCKS_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.delenv("CC_BLOCKS_LOG_FILE", raising=False)
    monkeypatch.delenv("CC_BLOCKS_LOG_LEVEL", raising=False)
    return config_home


@pytest.fixture(autouse=True)
def reset_logging():
    """configure() is process-global; undo it after every test."""
    yield
    cc_blocks.io.logging_setup.reset()


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def project_root():
    return "/project"
