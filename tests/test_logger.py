from __future__ import annotations

import logging

from rich.logging import RichHandler

from utils import logger as logger_module


def test_setup_logger_adds_rich_and_file_handlers(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(logger_module, "LOG_DIR", tmp_path)
    log = logger_module.setup_logger("content_bot.test_setup", level=logging.DEBUG, log_file="bot.log")
    try:
        assert any(isinstance(handler, RichHandler) for handler in log.handlers)
        log.info("ledger ready")
        for handler in log.handlers:
            handler.flush()
        assert "ledger ready" in (tmp_path / "bot.log").read_text(encoding="utf-8")

        # already configured loggers are returned untouched
        assert logger_module.setup_logger("content_bot.test_setup") is log
        assert len(log.handlers) == 2
    finally:
        for handler in list(log.handlers):
            handler.close()
            log.removeHandler(handler)


def test_get_logger_configures_once() -> None:
    log = logger_module.get_logger("content_bot.test_get")
    try:
        assert len(log.handlers) == 1
        assert logger_module.get_logger("content_bot.test_get") is log
        assert len(log.handlers) == 1
    finally:
        for handler in list(log.handlers):
            log.removeHandler(handler)
