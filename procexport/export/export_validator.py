"""Pre-flight row-count validation against format limits."""

from __future__ import annotations

import logging
from typing import List, Sequence

from procexport.database.interface import DatabaseInterface
from procexport.export.common.constants import (
    EXCEL_MAX_DATA_ROWS,
    EXCEL_WARNING_THRESHOLD,
    FileFormat,
)
from procexport.export.common.results import TableRowIssue, ValidationOutcome

logger = logging.getLogger(__name__)

SUGGESTIONS = [
    "Switch to CSV format (supports unlimited rows)",
    "Add date/filter parameters to stored procedure to reduce data",
    "Split export into multiple smaller date ranges",
]


class ExportValidator:
    """Rejects a batch up front when any table would overflow a spreadsheet.

    Row counts that cannot be measured are logged and skipped; only a measured
    count above the ceiling blocks the batch.
    """

    def __init__(self, database: DatabaseInterface):
        self.database = database

    async def validate_for_format(
        self,
        tables: Sequence[str],
        export_format: FileFormat,
    ) -> ValidationOutcome:
        if FileFormat(export_format) != FileFormat.XLSX:
            return ValidationOutcome(valid=True)

        warning_threshold = int(EXCEL_MAX_DATA_ROWS * EXCEL_WARNING_THRESHOLD)
        issues: List[TableRowIssue] = []

        for table in tables:
            try:
                row_count = await self.database.get_row_count(table)
            except Exception as e:
                logger.warning(f"Could not get row count for {table}: {e}")
                continue

            if row_count > EXCEL_MAX_DATA_ROWS:
                issues.append(TableRowIssue(table_name=table, row_count=row_count))
            elif row_count > warning_threshold:
                logger.warning(
                    f"{table} has {row_count:,} rows, close to the Excel limit of "
                    f"{EXCEL_MAX_DATA_ROWS:,}"
                )

        if not issues:
            return ValidationOutcome(valid=True)

        lines = "\n".join(issue.describe() for issue in issues)
        error_message = (
            f"Cannot export to Excel - {len(issues)} table(s) exceed Excel row limit:\n{lines}"
        )
        logger.error(error_message)
        return ValidationOutcome(
            valid=False,
            error_message=error_message,
            per_table_issues=issues,
            suggestions=list(SUGGESTIONS),
        )
