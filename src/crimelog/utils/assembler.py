"""
Report assembler module for the crime log pipeline.

Provides:
- Report data model (Report, ReportMetrics)
- Pipeline orchestration (fragments -> lines -> entries)
- Metrics calculation
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Dict, Any, Union, Sequence
from pathlib import Path

from .lines import LineReconstructor, TextFragment, DEFAULT_TOLERANCE, DEFAULT_HEADER_LINES
from .fields import IncidentFieldParser, IncidentEntry, ParseIssue
from ..config import JSON_SCHEMA_VERSION

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class ReportMetrics:
    """Metrics about report processing."""
    pages_processed: int = 0
    fragments_total: int = 0
    lines_total: int = 0
    lines_parsed: int = 0
    entries_total: int = 0
    field_errors: int = 0
    dropped_partial_entries: int = 0
    processing_time_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pages_processed": self.pages_processed,
            "fragments_total": self.fragments_total,
            "lines": {
                "total": self.lines_total,
                "parsed": self.lines_parsed
            },
            "entries_total": self.entries_total,
            "field_errors": self.field_errors,
            "dropped_partial_entries": self.dropped_partial_entries,
            "processing_time_seconds": round(self.processing_time_seconds, 2)
        }


@dataclass
class Report:
    """A parsed crime log."""
    task_id: str
    source_file: str
    entries: List[IncidentEntry] = field(default_factory=list)
    issues: List[ParseIssue] = field(default_factory=list)
    pages: List[List[str]] = field(default_factory=list)
    metrics: Optional[ReportMetrics] = None
    created_at: str = ""
    schema_version: str = JSON_SCHEMA_VERSION

    def __post_init__(self):
        if not self.task_id:
            self.task_id = str(uuid.uuid4())
        if not self.created_at:
            self.created_at = datetime.now().isoformat()

    def to_records(self) -> List[Dict[str, Any]]:
        """Entries in their JSON form, as written to the output file."""
        return [entry.to_dict() for entry in self.entries]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "schema_version": self.schema_version,
            "source_file": self.source_file,
            "created_at": self.created_at,
            "entries": self.to_records(),
            "issues": [issue.to_dict() for issue in self.issues],
            "metrics": self.metrics.to_dict() if self.metrics else {}
        }


# ============================================================================
# Report Assembler
# ============================================================================

class ReportAssembler:
    """
    Orchestrates the crime log pipeline.

    Coordinates:
    - Fragment extraction (PDF input only)
    - Line reconstruction per page
    - Field parsing across the document
    """

    def __init__(
        self,
        tolerance: float = DEFAULT_TOLERANCE,
        header_lines: int = DEFAULT_HEADER_LINES,
        carry_over_pages: bool = False,
        timezone: Optional[str] = None,
        max_pages: Optional[int] = None
    ):
        self.tolerance = tolerance
        self.header_lines = header_lines
        self.carry_over_pages = carry_over_pages
        self.timezone = timezone
        self.max_pages = max_pages

        # Initialize components lazily
        self._reconstructor = None
        self._parser = None

    @classmethod
    def from_config(cls, config) -> 'ReportAssembler':
        """Build an assembler from a PipelineConfig."""
        return cls(
            tolerance=config.lines.tolerance,
            header_lines=config.lines.header_lines,
            carry_over_pages=config.parser.carry_over_pages,
            timezone=config.parser.timezone,
            max_pages=config.max_pages
        )

    @property
    def reconstructor(self) -> LineReconstructor:
        if self._reconstructor is None:
            self._reconstructor = LineReconstructor(
                tolerance=self.tolerance,
                header_lines=self.header_lines
            )
        return self._reconstructor

    @property
    def parser(self) -> IncidentFieldParser:
        if self._parser is None:
            self._parser = IncidentFieldParser(
                carry_over_pages=self.carry_over_pages,
                timezone=self.timezone
            )
        return self._parser

    def process_page(
        self,
        fragments: Sequence[Union[TextFragment, Dict[str, Any]]],
        page_number: int = 1
    ) -> List[str]:
        """
        Reconstruct the content lines of a single page.

        Args:
            fragments: Positioned text fragments of the page
            page_number: Page number (1-indexed), for logging

        Returns:
            Ordered line strings with the header removed
        """
        lines = self.reconstructor.reconstruct(fragments)
        logger.debug(f"Page {page_number}: {len(fragments)} fragments -> {len(lines)} lines")
        return lines

    def process_document(
        self,
        pages: Sequence[Sequence[Union[TextFragment, Dict[str, Any]]]],
        source_file: str = ""
    ) -> Report:
        """
        Process the fragments of every page of a report.

        Args:
            pages: Fragments per page, in page order
            source_file: Original file name, recorded in the report

        Returns:
            Report with entries, issues and metrics
        """
        start_time = time.time()

        if self.max_pages is not None:
            pages = pages[:self.max_pages]

        metrics = ReportMetrics()
        page_lines = []
        for page_number, fragments in enumerate(pages, start=1):
            page_lines.append(self.process_page(fragments, page_number))
            metrics.fragments_total += len(fragments)

        result = self.parser.parse_pages(page_lines)

        metrics.pages_processed = len(page_lines)
        metrics.lines_total = sum(len(lines) for lines in page_lines)
        metrics.lines_parsed = result.lines_processed
        metrics.entries_total = len(result.entries)
        metrics.field_errors = len(result.issues)
        metrics.dropped_partial_entries = result.dropped_partial_entries
        metrics.processing_time_seconds = time.time() - start_time

        logger.info(
            f"Parsed {metrics.entries_total} entries from {metrics.pages_processed} pages"
            + (f" ({metrics.field_errors} field errors)" if metrics.field_errors else "")
        )

        return Report(
            task_id="",
            source_file=source_file,
            entries=result.entries,
            issues=result.issues,
            pages=page_lines,
            metrics=metrics
        )

    def process_pdf(self, pdf_path: Union[str, Path]) -> Report:
        """Extract fragments from a PDF and process them."""
        from .io import load_pdf_fragments

        pages = load_pdf_fragments(pdf_path, last_page=self.max_pages)
        return self.process_document(pages, source_file=str(pdf_path))
