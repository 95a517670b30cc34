import logging

from utils.logger import get_logger


def test_get_logger_adds_single_handler():
    logger = get_logger("tests.logger.single")
    get_logger("tests.logger.single")
    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO


def test_get_logger_explicit_level():
    assert get_logger("tests.logger.explicit", level="warning").level == logging.WARNING
    assert get_logger("tests.logger.numeric", level=logging.DEBUG).level == logging.DEBUG


def test_get_logger_level_from_environment(monkeypatch):
    monkeypatch.setenv("AUTOMATION_LOG_LEVEL", "ERROR")
    assert get_logger("tests.logger.env").level == logging.ERROR


def test_get_logger_unknown_level_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("AUTOMATION_LOG_LEVEL", "CHATTY")
    assert get_logger("tests.logger.bogus").level == logging.INFO
