"""Loan import module."""

from .loans_csv import ImportRecord, ImportResult, LoanCsvImporter

__all__ = ["ImportRecord", "ImportResult", "LoanCsvImporter"]
