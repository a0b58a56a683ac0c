"""
Tests for line reconstruction module.
"""

import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def frag(text, x, y):
    from crimelog.utils.lines import TextFragment
    return TextFragment(text, x, y)


class TestTextFragment:
    """Test TextFragment class."""

    def test_from_dict_text_key(self):
        """Test creation from a dict with a text key."""
        from crimelog.utils.lines import TextFragment

        fragment = TextFragment.from_dict({"text": "Hello", "x": 1, "y": 2.5})

        assert fragment == TextFragment("Hello", 1.0, 2.5)

    def test_from_dict_pdfjs_key(self):
        """Test creation from a pdf.js-extract item."""
        from crimelog.utils.lines import TextFragment

        fragment = TextFragment.from_dict({"str": "Hello", "x": 1, "y": 2, "width": 30})

        assert fragment.text == "Hello"
        assert fragment.x == 1.0

    def test_coerce_passthrough(self):
        """Test that fragments are returned unchanged by coerce."""
        from crimelog.utils.lines import TextFragment

        fragment = TextFragment("a", 0, 0)

        assert TextFragment.coerce(fragment) is fragment


class TestLineBucket:
    """Test LineBucket class."""

    def test_text_sorted_by_x(self):
        """Test that bucket text is joined left to right without separators."""
        from crimelog.utils.lines import LineBucket

        bucket = LineBucket(y=10.0)
        bucket.add(frag("World", 50, 10.0))
        bucket.add(frag("Hello ", 0, 10.1))

        assert bucket.text == "Hello World"
        assert len(bucket) == 2


class TestGrouping:
    """Test fuzzy grouping by y position."""

    def test_merge_within_tolerance(self):
        """Fragments 0.29 apart share a line at tolerance 0.3."""
        from crimelog.utils.lines import LineReconstructor

        reconstructor = LineReconstructor(tolerance=0.3, header_lines=0)
        lines = reconstructor.reconstruct([frag("A", 0, 10.0), frag("B", 5, 10.29)])

        assert lines == ["AB"]

    def test_split_beyond_tolerance(self):
        """Fragments 0.31 apart are separate lines at tolerance 0.3."""
        from crimelog.utils.lines import LineReconstructor

        reconstructor = LineReconstructor(tolerance=0.3, header_lines=0)
        lines = reconstructor.reconstruct([frag("A", 0, 10.0), frag("B", 5, 10.31)])

        assert lines == ["A", "B"]

    def test_exact_y_joins_bucket(self):
        """Fragments with identical y share a line."""
        from crimelog.utils.lines import LineReconstructor

        reconstructor = LineReconstructor(header_lines=0)
        lines = reconstructor.reconstruct([frag("right", 20, 5.0), frag("left", 0, 5.0)])

        assert lines == ["leftright"]

    def test_exact_y_joins_at_zero_tolerance(self):
        """Fragments with identical y share a line even when tolerance is zero."""
        from crimelog.utils.lines import LineReconstructor

        reconstructor = LineReconstructor(tolerance=0, header_lines=0)
        lines = reconstructor.reconstruct([frag("b", 5, 10.0), frag("a", 0, 10.0), frag("c", 0, 10.1)])

        assert lines == ["ab", "c"]
        assert [b.y for b in reconstructor.group([frag("b", 5, 10.0), frag("a", 0, 10.0)])] == [10.0]

    def test_representative_y_is_fixed(self):
        """A bucket key stays at its first fragment, so lines do not drift."""
        from crimelog.utils.lines import LineReconstructor

        reconstructor = LineReconstructor(tolerance=0.3, header_lines=0)
        buckets = reconstructor.group([
            frag("A", 0, 10.0),
            frag("B", 1, 10.2),
            frag("C", 2, 10.4),
        ])

        assert [b.y for b in buckets] == [10.0, 10.4]
        assert [b.text for b in buckets] == ["AB", "C"]

    def test_tie_goes_to_first_bucket(self):
        """An equidistant fragment joins the bucket created first."""
        from crimelog.utils.lines import LineReconstructor

        reconstructor = LineReconstructor(tolerance=0.6, header_lines=0)

        buckets = reconstructor.group([frag("a", 0, 10.0), frag("b", 0, 11.0), frag("x", 1, 10.5)])
        assert [b.text for b in buckets] == ["ax", "b"]

        buckets = reconstructor.group([frag("b", 0, 11.0), frag("a", 0, 10.0), frag("x", 1, 10.5)])
        assert [b.text for b in buckets] == ["bx", "a"]

    def test_partition(self):
        """Every fragment lands in exactly one bucket."""
        from crimelog.utils.lines import LineReconstructor

        fragments = [frag(str(i), i % 3, 10.0 * (i % 4) + 0.05 * i) for i in range(20)]
        buckets = LineReconstructor(tolerance=1.0).group(fragments)

        grouped = [f for b in buckets for f in b.fragments]
        assert len(grouped) == len(fragments)
        assert sorted(grouped, key=lambda f: f.text) == sorted(fragments, key=lambda f: f.text)

    def test_accepts_dicts(self):
        """Plain dict fragments are accepted."""
        from crimelog.utils.lines import reconstruct

        lines = reconstruct([{"str": "x", "x": 0, "y": 1}], header_lines=0)

        assert lines == ["x"]


class TestReadingOrder:
    """Test line ordering and header removal."""

    def test_lines_top_to_bottom(self):
        """Lines come out sorted by y, fragments by x."""
        from crimelog.utils.lines import LineReconstructor

        fragments = [
            frag("third", 0, 30.0),
            frag("one", 10, 10.0),
            frag("second", 0, 20.0),
            frag("first-", 0, 10.1),
        ]
        lines = LineReconstructor(header_lines=0).reconstruct(fragments)

        assert lines == ["first-one", "second", "third"]

    def test_well_separated_lines(self):
        """One line per distinct y when groups are far apart."""
        from crimelog.utils.lines import LineReconstructor

        fragments = []
        for row in range(5):
            for col in (2, 0, 1):
                fragments.append(frag(f"{row}{col}", col * 10, row * 12.0))

        lines = LineReconstructor(header_lines=0).reconstruct(fragments)

        assert lines == [f"{row}0{row}1{row}2" for row in range(5)]

    def test_header_dropped(self):
        """The first four lines of a page are removed."""
        from crimelog.utils.lines import reconstruct

        fragments = [frag(f"line{i}", 0, i * 10.0) for i in range(6)]

        assert reconstruct(fragments) == ["line4", "line5"]

    def test_short_page_yields_nothing(self):
        """A page with fewer lines than the header yields no lines."""
        from crimelog.utils.lines import reconstruct

        fragments = [frag(f"line{i}", 0, i * 10.0) for i in range(3)]

        assert reconstruct(fragments) == []

    def test_empty_page(self):
        """An empty page yields no lines."""
        from crimelog.utils.lines import reconstruct

        assert reconstruct([]) == []

    def test_invalid_parameters(self):
        """Negative parameters are rejected."""
        from crimelog.utils.lines import LineReconstructor

        with pytest.raises(ValueError):
            LineReconstructor(tolerance=-1)
        with pytest.raises(ValueError):
            LineReconstructor(header_lines=-1)
