"""Stored-procedure driven exports from SQL Server to xlsx, csv and txt files."""

__version__ = "0.1.0"
