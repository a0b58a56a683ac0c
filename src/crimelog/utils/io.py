"""
I/O utilities for the crime log pipeline.

Handles:
- Text fragment extraction from PDF pages
- Fragment dumps (save/load)
- JSON serialization
- Input discovery and output naming
"""

import json
import logging
from pathlib import Path
from typing import List, Union, Optional, Any
from dataclasses import asdict

import numpy as np

from .lines import TextFragment

logger = logging.getLogger(__name__)

FRAGMENTS_SUFFIX = ".fragments.json"


# ============================================================================
# PDF Fragment Extraction
# ============================================================================

def load_pdf_fragments(
    pdf_path: Union[str, Path],
    first_page: Optional[int] = None,
    last_page: Optional[int] = None
) -> List[List[TextFragment]]:
    """
    Extract positioned text fragments from every page of a PDF.

    Each PyMuPDF span becomes one fragment positioned at its baseline
    origin. Coordinates use a top-left page origin, so y grows downward.

    Args:
        pdf_path: Path to the PDF file
        first_page: First page to read (1-indexed, None = first)
        last_page: Last page to read (1-indexed, None = last)

    Returns:
        One list of fragments per page

    Raises:
        FileNotFoundError: If PDF file doesn't exist
        ImportError: If PyMuPDF is not installed
        RuntimeError: If the PDF cannot be opened
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF file not found: {pdf_path}")

    try:
        import fitz
    except ImportError:
        raise ImportError(
            "PyMuPDF is required. Install with: pip install PyMuPDF"
        )

    try:
        doc = fitz.open(str(pdf_path))
    except Exception as e:
        raise RuntimeError(f"Failed to open PDF {pdf_path}: {e}")

    logger.info(f"Extracting text fragments: {pdf_path}")

    pages = []
    with doc:
        start = (first_page or 1) - 1
        stop = min(last_page or doc.page_count, doc.page_count)

        for page_index in range(start, stop):
            page = doc[page_index]
            fragments = []
            for block in page.get_text("dict")["blocks"]:
                # Image blocks have no "lines"
                for line in block.get("lines", []):
                    for span in line["spans"]:
                        x, y = span["origin"]
                        fragments.append(TextFragment(span["text"], float(x), float(y)))
            logger.debug(f"Page {page_index + 1}: {len(fragments)} fragments")
            pages.append(fragments)

    logger.info(f"Extracted {len(pages)} pages from PDF")
    return pages


def get_pdf_page_count(pdf_path: Union[str, Path]) -> int:
    """Get the number of pages in a PDF file."""
    try:
        import fitz
        with fitz.open(str(pdf_path)) as doc:
            return doc.page_count
    except Exception as e:
        logger.warning(f"Could not get PDF page count: {e}")
        return 0


# ============================================================================
# Fragment Dumps
# ============================================================================

def save_fragments(
    pages: List[List[TextFragment]],
    output_path: Union[str, Path]
) -> Path:
    """Save page fragments as JSON for later inspection or reprocessing."""
    return save_json(
        [[fragment.to_dict() for fragment in page] for page in pages],
        output_path,
        indent=None
    )


def load_fragments(json_path: Union[str, Path]) -> List[List[TextFragment]]:
    """
    Load page fragments from a JSON dump.

    Accepts a list of pages, each a list of ``{"text"|"str", "x", "y"}``
    objects, or a pdf.js-extract style ``{"pages": [{"content": [...]}]}``.
    """
    data = load_json(json_path)

    if isinstance(data, dict) and "pages" in data:
        data = [page.get("content", []) for page in data["pages"]]

    if not isinstance(data, list):
        raise ValueError(f"Unrecognized fragment dump: {json_path}")

    return [[TextFragment.from_dict(item) for item in page] for page in data]


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy scalars, records and dataclasses."""

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.bool_):
            return bool(obj)
        if hasattr(obj, 'to_dict'):
            return obj.to_dict()
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: Optional[int] = 2,
    ensure_ascii: bool = False
) -> Path:
    """
    Save data to a JSON file.

    Args:
        data: Data to serialize (dict, list, dataclass, etc.)
        output_path: Path to save the JSON file
        indent: Indentation level for pretty printing (None = compact)
        ensure_ascii: If True, escape non-ASCII characters

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii, cls=EnhancedJSONEncoder)

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


def load_json(json_path: Union[str, Path]) -> Any:
    """Load data from a JSON file."""
    json_path = Path(json_path)
    if not json_path.exists():
        raise FileNotFoundError(f"JSON file not found: {json_path}")

    with open(json_path, 'r', encoding='utf-8') as f:
        return json.load(f)


# ============================================================================
# Directory Management
# ============================================================================

def ensure_dir(path: Union[str, Path]) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


# ============================================================================
# Input Discovery
# ============================================================================

def detect_input_type(input_path: Union[str, Path]) -> str:
    """
    Detect the type of input file or directory.

    Returns:
        One of: 'pdf', 'fragments', 'pdf_folder', 'unknown'
    """
    input_path = Path(input_path)

    if input_path.is_dir():
        return 'pdf_folder' if find_pdfs(input_path) else 'unknown'

    if not input_path.exists():
        return 'unknown'

    suffix = input_path.suffix.lower()
    if suffix == '.pdf':
        return 'pdf'
    elif suffix == '.json':
        return 'fragments'

    return 'unknown'


def find_pdfs(folder_path: Union[str, Path]) -> List[Path]:
    """List the PDF files of a folder in name order."""
    folder_path = Path(folder_path)
    return sorted(
        f for f in folder_path.iterdir()
        if f.is_file() and f.suffix.lower() == '.pdf'
    )


def output_path_for(
    input_path: Union[str, Path],
    output_dir: Union[str, Path]
) -> Path:
    """
    Name the JSON output for an input file.

    ``reports/01-2020.pdf`` becomes ``<output_dir>/01-2020.json``; a
    fragment dump ``01-2020.fragments.json`` maps to the same name.
    """
    name = Path(input_path).name
    if name.lower().endswith(FRAGMENTS_SUFFIX):
        base = name[:-len(FRAGMENTS_SUFFIX)]
    else:
        base = Path(name).stem
    return Path(output_dir) / f"{base}.json"
