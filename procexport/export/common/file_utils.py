"""File naming utilities for exports."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from procexport.export.common.constants import (
    PERIOD_TOKEN_LENGTH,
    TIMESTAMP_FORMAT,
    FileFormat,
    OperationMode,
)

MONTH_ABBREVIATIONS = (
    "JAN", "FEB", "MAR", "APR", "MAY", "JUN",
    "JUL", "AUG", "SEP", "OCT", "NOV", "DEC",
)


def get_file_extension(file_format: str) -> str:
    """Get the file extension (without dot) for an export format.

    Args:
        file_format: Export format (xlsx, csv, txt)

    Returns:
        Extension string (e.g., "xlsx", "csv", "txt")
    """
    format_ext = {
        FileFormat.XLSX: "xlsx",
        FileFormat.CSV: "csv",
        FileFormat.TXT: "txt",
    }
    try:
        return format_ext[FileFormat(file_format)]
    except ValueError:
        raise ValueError(
            f"Unsupported file_format: '{file_format}'. "
            f"Valid options: {', '.join(f.value for f in FileFormat)}"
        ) from None


def _timestamp(now: Optional[datetime]) -> str:
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def _is_period_token(token: Optional[str]) -> bool:
    return bool(token) and len(token) == PERIOD_TOKEN_LENGTH and token.isascii() and token.isdigit()


def generate_period_string(
    period_start: Optional[str],
    period_end: Optional[str],
    now: Optional[datetime] = None,
) -> str:
    """Build the period segment of a batch file name.

    Two YYYYMMDD tokens become ``{MON}{YY}_{DD}-{DD}`` (20250101, 20250131 ->
    JAN25_01-31). The month and year come from the start token. Missing or
    malformed tokens fall back to a ``%Y%m%d_%H%M%S`` timestamp.
    """
    if not (_is_period_token(period_start) and _is_period_token(period_end)):
        return _timestamp(now)

    year = period_start[2:4]
    start_day = period_start[6:8]
    end_day = period_end[6:8]
    month = int(period_start[4:6])

    month_name = MONTH_ABBREVIATIONS[month - 1] if 1 <= month <= 12 else "UNK"
    return f"{month_name}{year}_{start_day}-{end_day}"


def generate_batch_file_name(
    mode: OperationMode,
    file_format: str,
    period_start: Optional[str],
    period_end: Optional[str],
    sequence: int,
    now: Optional[datetime] = None,
) -> str:
    """Batch file name: ``{EX|IM}_{MONYY}_{DD-DD}_{seq}.{ext}``."""
    period = generate_period_string(period_start, period_end, now)
    return f"{OperationMode(mode).prefix}_{period}_{sequence}.{get_file_extension(file_format)}"


def generate_ad_hoc_file_name(
    table_name: str,
    file_format: str,
    now: Optional[datetime] = None,
) -> str:
    """Single-table download name: ``{table}_{YYYYMMDD_HHMMSS}.{ext}``."""
    return f"{table_name}_{_timestamp(now)}.{get_file_extension(file_format)}"
