"""
Bank statement import pipeline.

    upload bytes → load_workbook → parse_statement (detect + parse rows)
      → propose_mappings → user confirms → commit_import
"""

from .mapping import propose_mappings, propose_mapping_details
from .parser import parse_rows, parse_statement
from .reconcile import commit_import, get_saved_mappings
from .sanitize import sanitize
from .workbook import WorkbookError, load_workbook, validate_upload

__all__ = [
    "WorkbookError",
    "commit_import",
    "get_saved_mappings",
    "load_workbook",
    "parse_rows",
    "parse_statement",
    "propose_mapping_details",
    "propose_mappings",
    "sanitize",
    "validate_upload",
]
