import logging

import pytest

from marketsim.logger import setup_logging


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    level = root.level
    before = list(root.handlers)
    yield
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
    root.setLevel(level)


def test_info_and_above_are_printed(restore_root, capsys):
    setup_logging(logging.DEBUG)
    log = logging.getLogger("marketsim.test")
    log.debug("hidden")
    log.info("hello")
    log.warning("careful")
    log.error("broken")
    assert capsys.readouterr().out == "INFO - hello\nWARN - careful\nERROR - broken\n"


def test_level_names_are_accepted(restore_root, capsys):
    setup_logging("error")
    logging.getLogger("marketsim.test").info("still shown")
    assert capsys.readouterr().out == "INFO - still shown\n"


def test_setup_twice_installs_one_handler(restore_root, capsys):
    setup_logging(logging.INFO)
    setup_logging(logging.INFO)
    logging.getLogger("marketsim.test").info("once")
    assert capsys.readouterr().out.count("once") == 1


def test_unknown_level_raises(restore_root):
    with pytest.raises(ValueError):
        setup_logging("chatty")