#!/usr/bin/env python
"""
Command-line interface for the scan binder.

Usage:
    scanbinder <command> <input> [<output>] [options]

Examples:
    # Straighten every page of a scan
    scanbinder deskew scan.pdf straight.pdf

    # Remove border smudges from a single page image
    scanbinder clean-borders page.png page_clean.png

    # Report missing file numbers below an archive folder
    scanbinder check-sequences ./archive --json report.json
"""

import sys
from pathlib import Path

# Add src directory to path for imports when running as script
_src_dir = Path(__file__).parent.parent
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

import argparse
import logging
import time
from typing import List, Optional

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("scanbinder")

PAGE_COMMANDS = ("deskew", "clean-borders", "erase", "rotate", "crop", "inpaint")


def _add_page_io(parser: argparse.ArgumentParser, with_output: bool = True) -> None:
    parser.add_argument("input", help="Input PDF or image file")
    if with_output:
        parser.add_argument(
            "output",
            help="Output file; .pdf writes one PDF, an image extension writes one image per page"
        )
    parser.add_argument(
        "--pages",
        type=str,
        default=None,
        help="Page range to process, e.g., '1-5' or '1,3,5' (default: all)"
    )
    parser.add_argument(
        "--dpi",
        type=int,
        default=None,
        help="DPI for PDF to image conversion (default: from config)"
    )


def _add_rect(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--x", type=int, required=True, help="Left edge in pixels")
    parser.add_argument("--y", type=int, required=True, help="Top edge in pixels")
    parser.add_argument("--width", "-W", type=int, required=True, help="Rectangle width")
    parser.add_argument("--height", "-H", type=int, required=True, help="Rectangle height")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="scanbinder",
        description="Scan Binder - Repair scanned pages and check binder sequencing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Deskew a PDF:
    scanbinder deskew scan.pdf straight.pdf

  Erase the blot under pixel (120, 340) of page 2:
    scanbinder erase scan.pdf fixed.pdf --x 120 --y 340 --pages 2

  Print file names in binder order:
    scanbinder sort Box_010.pdf Box_Bia.pdf Box_007.pdf
        """
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
        "--debug",
        action="store_true",
        help="Re-raise unexpected errors with a traceback"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    _add_page_io(commands.add_parser("deskew", help="Straighten tilted pages"))
    _add_page_io(commands.add_parser("clean-borders", help="Remove dark smudges along the page border"))

    erase = commands.add_parser("erase", help="Erase the ink blot under a pixel")
    _add_page_io(erase)
    erase.add_argument("--x", type=int, required=True, help="Horizontal pixel position")
    erase.add_argument("--y", type=int, required=True, help="Vertical pixel position")

    rotate = commands.add_parser("rotate", help="Rotate pages by a free angle")
    _add_page_io(rotate)
    rotate.add_argument(
        "--angle",
        type=float,
        required=True,
        help="Degrees, positive turns clockwise"
    )

    crop = commands.add_parser("crop", help="Crop pages to a rectangle")
    _add_page_io(crop)
    _add_rect(crop)

    inpaint = commands.add_parser("inpaint", help="Cover a rectangle with the paper color")
    _add_page_io(inpaint)
    _add_rect(inpaint)

    _add_page_io(
        commands.add_parser("detect-skew", help="Print the correcting angle of each page"),
        with_output=False
    )

    sort = commands.add_parser("sort", help="Print names in binder order")
    sort.add_argument("names", nargs="*", help="Document names")
    sort.add_argument("--folder", help="Sort the PDF files of this folder instead")

    check = commands.add_parser("check-sequences", help="Report missing numbers per record folder")
    check.add_argument("root", help="Archive folder to scan")
    check.add_argument("--json", dest="json_path", help="Also write the report to this JSON file")

    return parser


def parse_page_range(page_str: str, max_pages: int) -> List[int]:
    """Parse page range string to list of page numbers."""
    pages = []

    for part in page_str.split(","):
        part = part.strip()
        if "-" in part:
            start, end = part.split("-")
            start = max(1, int(start))
            end = min(int(end), max_pages)
            pages.extend(range(start, end + 1))
        else:
            page = int(part)
            if 1 <= page <= max_pages:
                pages.append(page)

    return sorted(set(pages))


# ============================================================================
# Page Commands
# ============================================================================

def load_pages(input_path: Path, dpi: int):
    """Load the rasters of a PDF or single image."""
    from scanbinder.utils.io import detect_input_type, load_image, load_pdf

    input_type = detect_input_type(input_path)
    logger.info(f"Input type detected: {input_type}")

    if input_type == "pdf":
        return load_pdf(input_path, dpi=dpi)
    if input_type == "image":
        return [load_image(input_path)]
    raise ValueError(f"Unsupported input: {input_path}")


def write_pages(pages, output_path: Path, jpeg_quality: int) -> List[Path]:
    """Write rasters as one PDF, or as numbered images for image outputs."""
    from scanbinder.utils.documents import new_page
    from scanbinder.utils.io import encode_pdf, save_image

    output_path.parent.mkdir(parents=True, exist_ok=True)
    if output_path.suffix.lower() == ".pdf":
        output_path.write_bytes(encode_pdf([new_page(p) for p in pages], jpeg_quality))
        return [output_path]

    if len(pages) == 1:
        return [save_image(pages[0], output_path)]
    return [
        save_image(page, output_path.with_name(f"{output_path.stem}_{i:03d}{output_path.suffix}"))
        for i, page in enumerate(pages, start=1)
    ]


def page_operation(args, config):
    """Build the single-page operation a subcommand applies."""
    from scanbinder.utils import images

    if args.command == "deskew":
        def run(buffer):
            fixed, angle = images.deskew(buffer, config=config, return_angle=True)
            logger.info(f"Rotated by {angle:.2f} degrees")
            return fixed
        return run
    if args.command == "clean-borders":
        return lambda buffer: images.repair_border_artifacts(buffer, config=config)
    if args.command == "erase":
        return lambda buffer: images.erase_blot(buffer, args.x, args.y, config=config)
    if args.command == "rotate":
        return lambda buffer: images.rotate(buffer, args.angle, config=config)
    if args.command == "crop":
        return lambda buffer: images.crop(buffer, args.x, args.y, args.width, args.height)
    if args.command == "inpaint":
        return lambda buffer: images.inpaint_region(
            buffer, args.x, args.y, args.width, args.height, config=config)
    raise ValueError(f"Not a page command: {args.command}")


def run_page_command(args, config) -> int:
    """Apply a page operation to the selected pages and write the result."""
    start_time = time.time()
    pages = load_pages(Path(args.input), args.dpi or config.io.dpi)
    if not pages:
        logger.error("No pages to process")
        return 1

    selected = range(1, len(pages) + 1)
    if args.pages:
        selected = parse_page_range(args.pages, len(pages))
        logger.info(f"Processing pages: {selected}")

    operation = page_operation(args, config)
    for number in selected:
        pages[number - 1] = operation(pages[number - 1])

    written = write_pages(pages, Path(args.output), config.io.jpeg_quality)
    elapsed = time.time() - start_time

    if not args.quiet:
        for path in written:
            print(path)
        logger.info(f"Processed {len(selected)} page(s) in {elapsed:.2f}s")
    return 0


def run_detect_skew(args, config) -> int:
    from scanbinder.utils.skew import detect_skew_angle

    pages = load_pages(Path(args.input), args.dpi or config.io.dpi)
    selected = parse_page_range(args.pages, len(pages)) if args.pages else range(1, len(pages) + 1)
    sc = config.skew
    for number in selected:
        angle = detect_skew_angle(
            pages[number - 1],
            max_angle=sc.max_angle,
            step=sc.step,
            scale=sc.scale,
            ink_threshold=sc.ink_threshold
        )
        print(f"{number}\t{angle:+.2f}")
    return 0


# ============================================================================
# Sequencing Commands
# ============================================================================

def run_sort(args, config) -> int:
    from scanbinder.utils.sequencing import sort_names

    names = list(args.names)
    if args.folder:
        folder = Path(args.folder)
        if not folder.is_dir():
            logger.error(f"Not a directory: {folder}")
            return 1
        names += [p.name for p in folder.iterdir() if p.suffix.lower() == ".pdf"]

    for name in sort_names(names):
        print(name)
    return 0


def run_check_sequences(args, config) -> int:
    from scanbinder.utils.io import save_json
    from scanbinder.utils.sequencing import analyze_folder

    report = analyze_folder(args.root)
    if args.json_path:
        save_json(
            {group: [r.to_dict() for r in results] for group, results in report.items()},
            args.json_path
        )
        logger.info(f"Saved JSON: {args.json_path}")

    problems = 0
    if not args.quiet:
        print("\n" + "=" * 60)
        print("SEQUENCE REPORT")
        print("=" * 60)
    for group, results in report.items():
        for result in results:
            if result.has_errors:
                problems += 1
            if args.quiet:
                continue
            status = "ERROR" if result.has_errors else "OK"
            print(f"[{status}] {group}/{result.folder_path}: {result.total} file(s), "
                  f"range {result.range_min}-{result.range_max}")
            if result.missing:
                print(f"  Missing: {', '.join(str(n) for n in result.missing)}")
            if not result.has_cover:
                print("  No cover")
            if not result.has_table_of_contents:
                print("  No table of contents")
    if not args.quiet:
        print("=" * 60)
        print(f"Folders with problems: {problems}")
    return 0


def run_command(args) -> int:
    """Dispatch a parsed command line."""
    from scanbinder.config import get_config

    config = get_config()

    if args.command in PAGE_COMMANDS:
        return run_page_command(args, config)
    if args.command == "detect-skew":
        return run_detect_skew(args, config)
    if args.command == "sort":
        return run_sort(args, config)
    if args.command == "check-sequences":
        return run_check_sequences(args, config)

    logger.error(f"Unknown command: {args.command}")
    return 1


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
        exit_code = run_command(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.debug:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
