#!/usr/bin/env python
"""
Command-line interface for the crime log pipeline.

Usage:
    python -m crimelog.cli --input <pdf_or_folder> [<pdf> ...] --output <output_dir> [options]

Examples:
    # Convert two monthly logs
    python -m crimelog.cli --input input_data/01-2020.pdf input_data/01-2021.pdf --output output

    # Convert every PDF of a folder, reading times as US Eastern
    python -m crimelog.cli --input input_data --output output --timezone America/New_York

    # Keep the extracted fragments for debugging
    python -m crimelog.cli --input 01-2020.pdf --output output --dump-fragments
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional, Tuple

from . import __version__
from .config import get_config, PipelineConfig

logger = logging.getLogger("crimelog")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        description="Crime log reconstruction - Convert campus crime log PDFs to JSON",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Convert a set of monthly reports:
    crimelog --input input_data/01-2020.pdf input_data/01-2021.pdf --output output

  Convert a folder of reports:
    crimelog --input input_data --output output

  Re-run the parser on a saved fragment dump:
    crimelog --input output/01-2020.fragments.json --output output
        """
    )

    # Required arguments
    parser.add_argument(
        "--input", "-i",
        required=True,
        nargs="+",
        help="Input PDF files, fragment JSON dumps, or folders of PDFs"
    )

    # Optional arguments
    parser.add_argument(
        "--output", "-o",
        default="output",
        help="Output directory for generated files (default: output)"
    )

    parser.add_argument(
        "--tolerance",
        type=float,
        default=None,
        help="Max y-distance between fragments of one line (default: 0.3)"
    )

    parser.add_argument(
        "--header-lines",
        type=int,
        default=None,
        help="Lines to drop from the top of every page (default: 4)"
    )

    parser.add_argument(
        "--timezone",
        default=None,
        help="IANA time zone of report times (default: local zone)"
    )

    parser.add_argument(
        "--carry-over",
        action="store_true",
        help="Keep an unfinished incident across page breaks"
    )

    parser.add_argument(
        "--pages",
        type=str,
        default=None,
        help="Page range to process, e.g., '1-5' or '1,3,5' (default: all)"
    )

    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Read at most this many pages of each input (default: all)"
    )

    parser.add_argument(
        "--dump-fragments",
        action="store_true",
        help="Also write the extracted fragments as <name>.fragments.json"
    )

    parser.add_argument(
        "--report",
        action="store_true",
        help="Also write metrics and field errors as <name>.report.json"
    )

    parser.add_argument(
        "--indent",
        type=int,
        default=None,
        help="Indent the JSON output (default: compact)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def parse_page_range(page_str: str, max_pages: int) -> List[int]:
    """Parse page range string to list of page numbers."""
    pages = []

    for part in page_str.split(","):
        part = part.strip()
        if "-" in part:
            start, end = part.split("-")
            start = max(int(start), 1)
            end = min(int(end), max_pages)
            pages.extend(range(start, end + 1))
        else:
            page = int(part)
            if 1 <= page <= max_pages:
                pages.append(page)

    return sorted(set(pages))


def build_config(args) -> PipelineConfig:
    """Apply command-line overrides on top of the environment config."""
    config = get_config()

    if args.tolerance is not None:
        config.lines.tolerance = args.tolerance
    if args.header_lines is not None:
        config.lines.header_lines = args.header_lines
    if args.timezone:
        config.parser.timezone = args.timezone
    if args.carry_over:
        config.parser.carry_over_pages = True
    if args.max_pages is not None:
        config.max_pages = args.max_pages
    if args.indent is not None:
        config.export.indent = args.indent
    if args.verbose:
        config.debug_mode = True

    return config


def collect_inputs(inputs: List[str]) -> Tuple[List[Path], List[str]]:
    """Expand folders and split inputs into usable files and rejects."""
    from .utils.io import detect_input_type, find_pdfs

    files = []
    rejected = []
    for item in inputs:
        path = Path(item)
        input_type = detect_input_type(path)
        if input_type == "pdf_folder":
            files.extend(find_pdfs(path))
        elif input_type in ("pdf", "fragments"):
            files.append(path)
        else:
            rejected.append(item)
    return files, rejected


def process_file(input_path: Path, output_dir: Path, args, config: PipelineConfig) -> Path:
    """Convert one input file and return the path of its JSON output."""
    from .utils.io import (
        detect_input_type, load_pdf_fragments, load_fragments, get_pdf_page_count,
        save_fragments, save_json, output_path_for, FRAGMENTS_SUFFIX,
    )
    from .utils.assembler import ReportAssembler

    page_numbers = None
    if detect_input_type(input_path) == "pdf":
        if args.pages:
            # Only extract the span of pages that was asked for
            page_numbers = parse_page_range(args.pages, get_pdf_page_count(input_path))
            if not page_numbers:
                raise ValueError(f"No pages of {input_path} match {args.pages!r}")
            first = page_numbers[0]
            pages = load_pdf_fragments(input_path, first_page=first, last_page=page_numbers[-1])
            pages = [pages[i - first] for i in page_numbers]
        else:
            pages = load_pdf_fragments(input_path)
        if args.dump_fragments:
            dump_path = output_dir / f"{input_path.stem}{FRAGMENTS_SUFFIX}"
            save_fragments(pages, dump_path)
            logger.info(f"Saved fragments: {dump_path}")
    else:
        pages = load_fragments(input_path)

    if args.pages and page_numbers is None:
        page_numbers = parse_page_range(args.pages, len(pages))
        pages = [pages[i - 1] for i in page_numbers]
    if page_numbers is not None:
        logger.info(f"Processing pages: {page_numbers}")

    assembler = ReportAssembler.from_config(config)
    report = assembler.process_document(pages, source_file=str(input_path))

    json_path = output_path_for(input_path, output_dir)
    save_json(
        report.to_records(),
        json_path,
        indent=config.export.indent,
        ensure_ascii=config.export.ensure_ascii
    )
    logger.info(f"Saved JSON: {json_path}")

    if args.report:
        report_path = json_path.with_suffix(".report.json")
        save_json(report.to_dict(), report_path)
        logger.info(f"Saved report: {report_path}")

    return json_path


def run_pipeline(args) -> int:
    """Run the crime log pipeline over every input."""
    from .utils.io import ensure_dir

    start_time = time.time()
    config = build_config(args)

    output_dir = ensure_dir(args.output)

    files, rejected = collect_inputs(args.input)
    for item in rejected:
        logger.error(f"Unsupported or missing input: {item}")

    if not files:
        logger.error("No input files to process")
        return 1

    failed = []
    written = []
    for input_path in files:
        logger.info(f"Processing {input_path}")
        try:
            written.append(process_file(input_path, output_dir, args, config))
        except Exception as e:
            logger.error(f"Failed to process {input_path}: {e}")
            if config.debug_mode:
                logger.exception("Traceback:")
            failed.append(input_path)

    elapsed = time.time() - start_time

    if not args.quiet:
        print("\n" + "=" * 60)
        print("CRIME LOG CONVERSION COMPLETE")
        print("=" * 60)
        print(f"Output: {output_dir}")
        print(f"Files converted: {len(written)}")
        print(f"Files failed: {len(failed)}")
        print(f"Processing time: {elapsed:.2f}s")
        print("=" * 60)

    return 1 if failed or rejected else 0


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args(argv)

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    try:
        exit_code = run_pipeline(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
