"""Logging utilities for the export pipeline"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class CorrelationLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that prepends the correlation id and table name to messages"""

    def process(self, msg, kwargs):
        correlation_id = self.extra.get("correlation_id", "")
        table_name = self.extra.get("table_name", "")

        prefix_parts = []
        if correlation_id:
            prefix_parts.append(correlation_id)
        if table_name:
            prefix_parts.append(table_name)

        if prefix_parts:
            prefix = "[" + "] [".join(prefix_parts) + "]"
            return f"{prefix} {msg}", kwargs
        return msg, kwargs


def correlation_logger(
    logger: logging.Logger,
    correlation_id: Optional[str] = None,
    table_name: Optional[str] = None,
) -> CorrelationLoggerAdapter:
    return CorrelationLoggerAdapter(
        logger, {"correlation_id": correlation_id or "", "table_name": table_name or ""}
    )


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
) -> Optional[Path]:
    """Configure root logging for CLI runs.

    Adds a daily file under ``log_dir`` (``procexport_YYYYMMDD.log``) when given.

    Returns:
        Path of the log file, or None when logging to the console only
    """
    handlers = [logging.StreamHandler()]
    log_file = None
    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        log_file = log_path / f"procexport_{datetime.now():%Y%m%d}.log"
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
    return log_file
