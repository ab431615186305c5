import logging

from piinty.core.logging import setup_logging


def test_setup_logging_writes_log_file(tmp_path):
    log_file = tmp_path / "logs" / "piinty.log"

    root = setup_logging(level="debug", log_file=str(log_file))
    logging.getLogger("piinty.test").info("pint recorded")
    for handler in root.handlers:
        handler.flush()

    assert log_file.exists()
    assert "pint recorded" in log_file.read_text(encoding="utf-8")
    assert logging.getLogger("pymongo").level == logging.WARNING


def test_unknown_level_falls_back_to_info():
    root = setup_logging(level="chatty", log_file="")

    assert root.handlers[0].level == logging.INFO
