import logging

import pytest

from nfs3kit.log_setup import init_logging


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    level = root.level
    before = list(root.handlers)
    yield root
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def test_invalid_level_raises(restore_root):
    with pytest.raises(ValueError, match="invalid log level"):
        init_logging("loud", None, True)


def test_no_outputs_returns_nothing(restore_root):
    assert init_logging("info", None, False) == []


def test_file_logging_writes_message(restore_root, tmp_path):
    log_file = tmp_path / "sub" / "server.log"
    handlers = init_logging("info", str(log_file), False)
    assert len(handlers) == 1
    logging.getLogger("nfs3kit.test").info("hello from test")
    for handler in handlers:
        handler.flush()
    assert "hello from test" in log_file.read_text(encoding="utf-8")


def test_level_is_case_insensitive(restore_root):
    handlers = init_logging("DEBUG", None, True)
    assert len(handlers) == 1
    assert restore_root.level == logging.DEBUG


def test_both_outputs(restore_root, tmp_path):
    handlers = init_logging("warn", str(tmp_path / "a.log"), True)
    assert len(handlers) == 2
    assert restore_root.level == logging.WARNING