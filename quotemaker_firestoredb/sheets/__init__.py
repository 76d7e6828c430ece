"""
Spreadsheet import: rows from the Sheets API written into collections.
"""

from .importer import ImportResult, SpreadsheetImporter, rows_to_mappings

__all__ = ["ImportResult", "SpreadsheetImporter", "rows_to_mappings"]
