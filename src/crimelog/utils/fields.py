"""
Field extraction module for crime log lines.

Provides:
- Incident entry data model
- Label recognition (ordered prefix rules)
- Per-line state machine step
- Date line and disposition normalization

Every line of the report is first checked for a field label, which selects
the active field. The same line is then read as a value for the active
field, because the label and its value share one physical line. Lines
without a label continue the previous field.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from datetime import tzinfo
from enum import Enum
from typing import List, Optional, Tuple, Dict, Any, Callable, Iterable, Sequence

from dateutil import tz
from dateutil import parser as dtp

from ..config import FIELD_KEYS

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes and Enums
# ============================================================================

def _attribute_name(key: str) -> str:
    """Map an output key such as 'reportDate' to its field name."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


class FieldState(Enum):
    """Field labels recognized in a report, plus the summary footer."""
    REPORT_DATE = "reportDate"
    LOCATION = "location"
    TIME_START = "timeStart"
    TIME_END = "timeEnd"
    INCIDENT = "incident"
    DISPOSITION = "disposition"
    DATE_MODIFIED = "dateModified"
    FOOTER = "footer"


@dataclass(frozen=True)
class IncidentEntry:
    """One incident record. Unset fields are left out of the JSON form."""
    incident: str = ""
    report_date: Optional[int] = None
    location: Optional[str] = None
    on_campus: Optional[bool] = None
    time_start: Optional[int] = None
    time_end: Optional[int] = None
    disposition: Optional[str] = None
    date_modified: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        values = ((key, getattr(self, _attribute_name(key))) for key in FIELD_KEYS)
        return {key: value for key, value in values if value is not None}


@dataclass(frozen=True)
class ParseIssue:
    """A recoverable error found while reading one field value."""
    page: int
    line_index: int
    field: str
    line: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page": self.page,
            "line_index": self.line_index,
            "field": self.field,
            "line": self.line,
            "message": self.message
        }


@dataclass(frozen=True)
class ParserState:
    """Accumulator threaded through the line fold."""
    active: Optional[FieldState] = None
    entry: IncidentEntry = field(default_factory=IncidentEntry)
    entries: Tuple[IncidentEntry, ...] = ()
    issues: Tuple[ParseIssue, ...] = ()
    stopped: bool = False  # Footer reached on the current page
    consumed: bool = False  # A field line was read since the last entry closed

    @property
    def has_partial_entry(self) -> bool:
        return self.consumed


@dataclass
class ParseResult:
    """Outcome of parsing one document."""
    entries: List[IncidentEntry] = field(default_factory=list)
    issues: List[ParseIssue] = field(default_factory=list)
    lines_processed: int = 0
    dropped_partial_entries: int = 0


class DateLineError(ValueError):
    """Raised when a date line cannot be turned into a timestamp."""


# ============================================================================
# Label Rules
# ============================================================================

def _starts_with(prefix: str) -> Callable[[str], bool]:
    return lambda line: line.startswith(prefix)


def _contains(text: str) -> Callable[[str], bool]:
    return lambda line: text in line


# Checked in order, first match wins
LABEL_RULES: Tuple[Tuple[Callable[[str], bool], FieldState], ...] = (
    (_starts_with("Date Reported"), FieldState.REPORT_DATE),
    (_starts_with("General Location"), FieldState.LOCATION),
    (_starts_with("Date Occurred From"), FieldState.TIME_START),
    (_starts_with("Date Occurred To"), FieldState.TIME_END),
    (_starts_with("Incident/Offenses"), FieldState.INCIDENT),
    (_starts_with("Disposition"), FieldState.DISPOSITION),
    (_starts_with("Modified Date"), FieldState.DATE_MODIFIED),
    (_contains("incident(s) listed"), FieldState.FOOTER),
)

VALUE_PREFIXES: Dict[FieldState, str] = {
    FieldState.REPORT_DATE: "Date Reported:",
    FieldState.LOCATION: "General Location:",
    FieldState.TIME_START: "Date Occurred From:",
    FieldState.TIME_END: "Date Occurred To:",
    FieldState.INCIDENT: "Incident/Offenses:",
    FieldState.DATE_MODIFIED: "Modified Date:",
}

DISPOSITION_CODES = ("Disposition:PAT-", "Disposition:inv-")
ON_CAMPUS = "On Campus"
LOCATION_SEPARATOR = " - "


def match_label(line: str) -> Optional[FieldState]:
    """Return the state selected by the first matching label rule, if any."""
    for predicate, state in LABEL_RULES:
        if predicate(line):
            return state
    return None


# ============================================================================
# Value Normalization
# ============================================================================

def resolve_timezone(name: Optional[str] = None) -> tzinfo:
    """Resolve an IANA zone name, or the local zone when name is None."""
    if name is None:
        return tz.tzlocal()
    zone = tz.gettz(name)
    if zone is None:
        raise ValueError(f"Unknown time zone: {name}")
    return zone


def parse_date_line(line: str, zone: Optional[tzinfo] = None) -> int:
    """
    Convert a report date line into milliseconds since the epoch.

    The line looks like ``01/14/20 Tue at 13:05 Report #: 20-0001`` with the
    ``Report`` tail only present on some fields.

    Args:
        line: Date text with its field label already removed
        zone: Zone for the wall-clock time (local zone if None)

    Returns:
        Timestamp in milliseconds

    Raises:
        DateLineError: If the line has no date token, no " at" marker,
            no time text, or does not parse as a date
    """
    space = line.find(" ")
    if space <= 0:
        raise DateLineError(f"No date token in {line!r}")
    date = line[:space]

    rest = line.replace(f"{date} ", "", 1)

    at = rest.find(" at")
    if at == -1:
        raise DateLineError(f"No ' at' marker in {line!r}")

    start = at + 4
    end = rest.find("Report")
    if end == -1:
        end = len(rest)
    time = rest[start:end].strip()
    if not time:
        raise DateLineError(f"No time text in {line!r}")

    try:
        parsed = dtp.parse(f"{date} {time}")
    except (ValueError, OverflowError) as e:
        raise DateLineError(f"Could not parse {date} {time!r}: {e}") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone or tz.tzlocal())

    return int(round(parsed.timestamp() * 1000))


def proper_capitalize(text: str) -> str:
    """Upper-case the first character and lower-case the rest."""
    return text[:1].upper() + text[1:].lower()


def clean_disposition(line: str) -> str:
    for code in DISPOSITION_CODES:
        line = line.replace(code, "", 1)
    return proper_capitalize(line)


def split_location(line: str) -> Tuple[str, bool]:
    """Return the location name and whether it is marked on campus."""
    tokens = line.replace(VALUE_PREFIXES[FieldState.LOCATION], "", 1).split(LOCATION_SEPARATOR)
    return tokens[0], ON_CAMPUS in tokens


# ============================================================================
# State Machine
# ============================================================================

_DATE_FIELDS = {
    FieldState.REPORT_DATE: "report_date",
    FieldState.TIME_START: "time_start",
    FieldState.TIME_END: "time_end",
    FieldState.DATE_MODIFIED: "date_modified",
}


def step(
    state: ParserState,
    line: str,
    page: int = 0,
    line_index: int = 0,
    zone: Optional[tzinfo] = None
) -> ParserState:
    """
    Advance the parser by one line.

    Args:
        state: Accumulator before the line
        line: Reconstructed line text
        page: Page number, for issue reporting
        line_index: Line position on the page, for issue reporting
        zone: Zone for date fields

    Returns:
        Accumulator after the line
    """
    label = match_label(line)
    if label is FieldState.FOOTER:
        return replace(state, stopped=True)
    active = label or state.active

    if active is None:
        logger.debug(f"Ignoring line before any label: {line!r}")
        return state

    entry = state.entry
    issues = state.issues

    if active in _DATE_FIELDS:
        try:
            value = parse_date_line(line.replace(VALUE_PREFIXES[active], "", 1), zone)
            entry = replace(entry, **{_DATE_FIELDS[active]: value})
        except DateLineError as e:
            logger.warning(f"Page {page}, line {line_index}: bad {active.value} value: {e}")
            issues = issues + (ParseIssue(page, line_index, active.value, line, str(e)),)
    elif active is FieldState.LOCATION:
        location, on_campus = split_location(line)
        entry = replace(entry, location=location, on_campus=on_campus)
    elif active is FieldState.INCIDENT:
        text = line.replace(VALUE_PREFIXES[FieldState.INCIDENT], "", 1)
        entry = replace(entry, incident=entry.incident + text)
    elif active is FieldState.DISPOSITION:
        entry = replace(entry, disposition=clean_disposition(line))

    if active is FieldState.DATE_MODIFIED:
        return ParserState(
            active=active,
            entry=IncidentEntry(),
            entries=state.entries + (entry,),
            issues=issues
        )

    return replace(state, active=active, entry=entry, issues=issues, consumed=True)


# ============================================================================
# Incident Field Parser
# ============================================================================

class IncidentFieldParser:
    """
    Parses reconstructed report lines into incident entries.

    By default the active field and the entry in progress are reset at every
    page, so an incident block split across a page break is lost. Set
    ``carry_over_pages`` to keep them.
    """

    def __init__(
        self,
        carry_over_pages: bool = False,
        timezone: Optional[str] = None
    ):
        self.carry_over_pages = carry_over_pages
        self.timezone = timezone
        self.zone = resolve_timezone(timezone)

    def parse_pages(self, pages: Iterable[Sequence[str]]) -> ParseResult:
        """
        Parse the content lines of every page of one document.

        Args:
            pages: Ordered line strings per page, headers already removed

        Returns:
            ParseResult with entries, issues and counters
        """
        result = ParseResult()
        state = ParserState()

        for page_number, lines in enumerate(pages, start=1):
            if not self.carry_over_pages:
                if state.has_partial_entry:
                    logger.debug(f"Dropping incomplete entry at end of page {page_number - 1}")
                    result.dropped_partial_entries += 1
                state = ParserState(entries=state.entries, issues=state.issues)
            else:
                state = replace(state, stopped=False)

            for line_index, line in enumerate(lines):
                state = step(state, line, page_number, line_index, self.zone)
                result.lines_processed += 1
                if state.stopped:
                    logger.debug(f"Footer reached on page {page_number} at line {line_index}")
                    break

        if state.has_partial_entry:
            logger.debug("Dropping incomplete entry at end of document")
            result.dropped_partial_entries += 1

        result.entries = list(state.entries)
        result.issues = list(state.issues)
        return result

    def parse(self, pages: Iterable[Sequence[str]]) -> List[IncidentEntry]:
        """Parse pages of lines and return the finalized entries."""
        return self.parse_pages(pages).entries
