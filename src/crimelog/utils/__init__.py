"""
Utility modules for the crime log pipeline.
"""

from .io import load_pdf_fragments, load_fragments, save_fragments, save_json, ensure_dir
from .lines import LineReconstructor, LineBucket, TextFragment, reconstruct
from .fields import (
    IncidentFieldParser, IncidentEntry, FieldState, ParseIssue, ParseResult,
    DateLineError, parse_date_line, proper_capitalize,
)
from .assembler import ReportAssembler, Report, ReportMetrics

__all__ = [
    # IO
    "load_pdf_fragments", "load_fragments", "save_fragments", "save_json", "ensure_dir",
    # Lines
    "LineReconstructor", "LineBucket", "TextFragment", "reconstruct",
    # Fields
    "IncidentFieldParser", "IncidentEntry", "FieldState", "ParseIssue", "ParseResult",
    "DateLineError", "parse_date_line", "proper_capitalize",
    # Assembly
    "ReportAssembler", "Report", "ReportMetrics",
]
