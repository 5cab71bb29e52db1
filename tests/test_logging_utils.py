import logging

from procexport.logging_utils import configure_logging, correlation_logger


def test_prefixes_correlation_and_table(caplog):
    logger = logging.getLogger("procexport.test")
    with caplog.at_level(logging.INFO, logger="procexport.test"):
        correlation_logger(logger, "EXPORT_BATCH-20250131-142530-abcd1234", "Orders").info("Queried 3 rows")
    assert caplog.messages == ["[EXPORT_BATCH-20250131-142530-abcd1234] [Orders] Queried 3 rows"]


def test_no_prefix_without_context(caplog):
    logger = logging.getLogger("procexport.test")
    with caplog.at_level(logging.INFO, logger="procexport.test"):
        correlation_logger(logger).info("plain")
    assert caplog.messages == ["plain"]


def test_configure_logging_writes_daily_file(tmp_path):
    log_file = configure_logging(log_dir=tmp_path / "logs")
    try:
        logging.getLogger("procexport.test").info("hello file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert log_file.name.startswith("procexport_")
        assert log_file.suffix == ".log"
        assert "| INFO     | hello file" in log_file.read_text(encoding="utf-8")
    finally:
        for handler in list(logging.getLogger().handlers):
            if isinstance(handler, logging.FileHandler):
                handler.close()
                logging.getLogger().removeHandler(handler)


def test_configure_logging_console_only():
    assert configure_logging() is None
