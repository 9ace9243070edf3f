"""Tests for cc_blocks.io.logging_setup — handler wiring for entry points."""

import logging
from logging.handlers import RotatingFileHandler

import cc_blocks.io.logging_setup as logging_setup


def _root():
    return logging.getLogger(logging_setup.ROOT_LOGGER)


def test_configure_writes_to_log_dir(tmp_path):
    runtime = logging_setup.configure(run_name="parse")

    assert runtime.level == logging.INFO
    assert runtime.level_name == "INFO"
    assert runtime.file_path.startswith(str(tmp_path / "logs"))
    assert "parse-" in runtime.file_path

    logging.getLogger("cc_blocks.parser").info("hello from the parser")
    for handler in _root().handlers:
        handler.flush()
    with open(runtime.file_path, encoding="utf-8") as f:
        assert "hello from the parser" in f.read()


def test_handlers_and_propagation():
    logging_setup.configure()
    handlers = _root().handlers
    assert len(handlers) == 2
    assert any(isinstance(h, RotatingFileHandler) for h in handlers)
    assert _root().propagate is False


def test_configure_is_idempotent():
    first = logging_setup.configure()
    second = logging_setup.configure(run_name="other")
    assert first is second
    assert logging_setup.get_runtime() is first
    assert len(_root().handlers) == 2


def test_level_and_file_from_env(tmp_path, monkeypatch):
    log_file = tmp_path / "custom" / "run.log"
    monkeypatch.setenv("CC_BLOCKS_LOG_LEVEL", "debug")
    monkeypatch.setenv("CC_BLOCKS_LOG_FILE", str(log_file))
    runtime = logging_setup.configure()
    assert runtime.level == logging.DEBUG
    assert runtime.level_name == "DEBUG"
    assert runtime.file_path == str(log_file)
    assert log_file.parent.is_dir()


def test_invalid_level_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("CC_BLOCKS_LOG_LEVEL", "chatty")
    assert logging_setup.configure().level == logging.INFO


def test_run_name_is_sanitized():
    runtime = logging_setup.configure(run_name="a b/c")
    assert "a-b-c-" in runtime.file_path


def test_reset_detaches_handlers():
    logging_setup.configure()
    logging_setup.reset()
    assert _root().handlers == []
    assert _root().propagate is True
    assert logging_setup.get_runtime() is None
