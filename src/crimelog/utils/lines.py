"""
Line reconstruction module for crime log pages.

Provides:
- Text fragment and line bucket data model
- Fuzzy grouping of fragments by vertical position
- Reading order (top-to-bottom, left-to-right)
- Header line removal

PDF text extraction often reports slightly different y-coordinates for
fragments printed on the same visual line. Fragments closer than the
tolerance to an existing line are folded into it; anything further away
starts a new line.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Dict, Any, Iterable, Union
import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.3
DEFAULT_HEADER_LINES = 4


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class TextFragment:
    """One positioned run of text extracted from a page."""
    text: str
    x: float
    y: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TextFragment':
        # pdf.js-extract items carry their text under "str"
        text = data["text"] if "text" in data else data["str"]
        return cls(text=text, x=float(data["x"]), y=float(data["y"]))

    @classmethod
    def coerce(cls, item: Union['TextFragment', Dict[str, Any]]) -> 'TextFragment':
        if isinstance(item, cls):
            return item
        return cls.from_dict(item)

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "x": self.x, "y": self.y}


@dataclass
class LineBucket:
    """Fragments believed to belong to one visual line."""
    y: float
    fragments: List[TextFragment] = field(default_factory=list)

    def add(self, fragment: TextFragment):
        self.fragments.append(fragment)

    def sorted_fragments(self) -> List[TextFragment]:
        return sorted(self.fragments, key=lambda f: f.x)

    @property
    def text(self) -> str:
        return "".join(f.text for f in self.sorted_fragments())

    def __len__(self) -> int:
        return len(self.fragments)


# ============================================================================
# Line Reconstructor
# ============================================================================

class LineReconstructor:
    """
    Rebuilds the text lines of a page from unordered fragments.

    Buckets are keyed by the y-coordinate of the fragment that created
    them. A later fragment joins the nearest bucket when the distance is
    below ``tolerance``; the bucket key is never moved.
    """

    def __init__(
        self,
        tolerance: float = DEFAULT_TOLERANCE,
        header_lines: int = DEFAULT_HEADER_LINES
    ):
        if tolerance < 0:
            raise ValueError(f"tolerance must be non-negative, got {tolerance}")
        if header_lines < 0:
            raise ValueError(f"header_lines must be non-negative, got {header_lines}")
        self.tolerance = tolerance
        self.header_lines = header_lines

    def group(
        self,
        fragments: Iterable[Union[TextFragment, Dict[str, Any]]]
    ) -> List[LineBucket]:
        """
        Assign every fragment to a line bucket.

        Args:
            fragments: Fragments of a single page, in extraction order

        Returns:
            Buckets in creation order
        """
        buckets: List[LineBucket] = []
        keys: List[float] = []

        for item in fragments:
            fragment = TextFragment.coerce(item)

            if not buckets:
                buckets.append(LineBucket(y=fragment.y, fragments=[fragment]))
                keys.append(fragment.y)
                continue

            # argmin returns the first minimum, so ties go to the older bucket
            distances = np.abs(np.asarray(keys, dtype=float) - fragment.y)
            closest = int(np.argmin(distances))

            if distances[closest] == 0 or distances[closest] < self.tolerance:
                buckets[closest].add(fragment)
            else:
                buckets.append(LineBucket(y=fragment.y, fragments=[fragment]))
                keys.append(fragment.y)

        return buckets

    def order(self, buckets: List[LineBucket]) -> List[LineBucket]:
        """Sort buckets top-to-bottom by their representative y."""
        return sorted(buckets, key=lambda b: b.y)

    def lines(
        self,
        fragments: Iterable[Union[TextFragment, Dict[str, Any]]]
    ) -> List[str]:
        """Reconstruct every line of a page, header included."""
        buckets = self.order(self.group(fragments))
        return [bucket.text for bucket in buckets]

    def reconstruct(
        self,
        fragments: Iterable[Union[TextFragment, Dict[str, Any]]]
    ) -> List[str]:
        """
        Reconstruct the content lines of a page.

        Args:
            fragments: Fragments of a single page

        Returns:
            Ordered line strings with the page header removed
        """
        all_lines = self.lines(fragments)
        logger.debug(
            f"Reconstructed {len(all_lines)} lines, "
            f"dropping {min(len(all_lines), self.header_lines)} header lines"
        )
        return all_lines[self.header_lines:]


def reconstruct(
    fragments: Iterable[Union[TextFragment, Dict[str, Any]]],
    tolerance: float = DEFAULT_TOLERANCE,
    header_lines: int = DEFAULT_HEADER_LINES
) -> List[str]:
    """Reconstruct the content lines of one page."""
    return LineReconstructor(tolerance, header_lines).reconstruct(fragments)
