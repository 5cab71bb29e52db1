"""Tests for export file naming."""

from datetime import datetime

import pytest

from procexport.export.common.constants import FileFormat, OperationMode
from procexport.export.common.file_utils import (
    generate_ad_hoc_file_name,
    generate_batch_file_name,
    generate_period_string,
    get_file_extension,
)

NOW = datetime(2025, 3, 4, 9, 8, 7)


class TestGetFileExtension:
    """Tests for get_file_extension."""

    @pytest.mark.parametrize(
        "file_format, expected",
        [("xlsx", "xlsx"), ("csv", "csv"), ("txt", "txt"), (FileFormat.XLSX, "xlsx")],
    )
    def test_known_formats(self, file_format, expected):
        """Test each supported format maps to its extension."""
        assert get_file_extension(file_format) == expected

    def test_unknown_format_raises(self):
        """Test unsupported formats list the valid options."""
        with pytest.raises(ValueError, match="Valid options: xlsx, csv, txt"):
            get_file_extension("parquet")


class TestGeneratePeriodString:
    """Tests for the MONYY_DD-DD period segment."""

    def test_january_range(self):
        """Test a full month."""
        assert generate_period_string("20250101", "20250131") == "JAN25_01-31"

    def test_month_and_year_come_from_start(self):
        """Test the end token only contributes its day."""
        assert generate_period_string("20241220", "20250110") == "DEC24_20-10"

    def test_invalid_month_is_unk(self):
        """Test month digits outside 1-12 give UNK."""
        assert generate_period_string("20251301", "20251331") == "UNK25_01-31"

    @pytest.mark.parametrize(
        "start, end",
        [
            ("", "20250131"),
            ("20250101", None),
            ("2025011", "20250131"),
            ("20250101", "202501310"),
            ("2025ab01", "20250131"),
            ("20X50101", "20250131"),
            ("2025+101", "20250131"),
            ("20250101", "202501 1"),
        ],
    )
    def test_malformed_tokens_fall_back_to_timestamp(self, start, end):
        """Test missing, short, long or non-numeric tokens use the current timestamp."""
        assert generate_period_string(start, end, now=NOW) == "20250304_090807"


class TestBatchFileName:
    """Tests for generate_batch_file_name."""

    def test_export_csv_sequence(self):
        """Test export-mode names for consecutive tables."""
        names = [
            generate_batch_file_name(OperationMode.EXPORT, FileFormat.CSV, "20250101", "20250131", seq)
            for seq in (1, 2)
        ]
        assert names == ["EX_JAN25_01-31_1.csv", "EX_JAN25_01-31_2.csv"]

    def test_import_prefix(self):
        """Test import mode uses the IM prefix."""
        name = generate_batch_file_name(OperationMode.IMPORT, FileFormat.XLSX, "20250601", "20250615", 3)
        assert name == "IM_JUN25_01-15_3.xlsx"

    def test_tab_delimited_extension(self):
        """Test txt format extension."""
        name = generate_batch_file_name(OperationMode.EXPORT, FileFormat.TXT, "20251101", "20251130", 1)
        assert name == "EX_NOV25_01-30_1.txt"

    def test_timestamp_fallback(self):
        """Test names without period tokens fall back to a timestamp."""
        name = generate_batch_file_name(OperationMode.EXPORT, FileFormat.CSV, None, None, 1, now=NOW)
        assert name == "EX_20250304_090807_1.csv"


class TestAdHocFileName:
    """Tests for single-table download names."""

    def test_table_and_timestamp(self):
        """Test ad-hoc names use table name and timestamp."""
        assert generate_ad_hoc_file_name("Orders", FileFormat.XLSX, now=NOW) == "Orders_20250304_090807.xlsx"
