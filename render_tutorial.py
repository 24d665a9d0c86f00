#!/usr/bin/env python3
"""
Render the Tutorial
===================

Entry point that executes the tutorial chapters (S1-S8) and writes one
rendered document.

Usage:
    python render_tutorial.py                         # All chapters -> tutorial.md
    python render_tutorial.py S1 S2 S3                # Selected chapters
    python render_tutorial.py --format html -o tutorial.html
    python render_tutorial.py --describe S4           # Print chapter descriptions

Environment:
    MFX_TUTORIAL_OUTPUT: Default output path (optional)
    MFX_TABLE_STYLE: Default table style (optional)
    MFX_FLOAT_PLACEMENT: Default LaTeX float placement (optional)
"""
import os
import sys
import argparse
import importlib

from mfx_stats.reporting import TABLE_STYLES, set_option
from tutorial import SECTIONS, DOCUMENT, CellExecutionError, run_document, write_document
from tutorial.runner import FORMATS, SUFFIXES


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Render the marginal effects tutorial",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python render_tutorial.py                        # Render every chapter
    python render_tutorial.py S1 S2 S6               # Render selected chapters
    python render_tutorial.py --format latex -o tutorial.tex --float-placement htbp
    python render_tutorial.py --describe             # Show all descriptions
        """,
    )
    parser.add_argument(
        "sections",
        nargs="*",
        metavar="SECTION",
        help=f"Specific chapters to render (default: all of {', '.join(SECTIONS)})",
    )
    parser.add_argument(
        "--describe",
        action="store_true",
        help="Print chapter descriptions instead of rendering",
    )
    parser.add_argument(
        "-o", "--output",
        default=os.getenv("MFX_TUTORIAL_OUTPUT", DOCUMENT["default_output"]),
        help="Output file",
    )
    parser.add_argument(
        "--format",
        choices=FORMATS,
        default=None,
        help="Output format (default: from the output file suffix)",
    )
    parser.add_argument(
        "--table-style",
        choices=TABLE_STYLES,
        default=os.getenv("MFX_TABLE_STYLE", "auto"),
        help="Table style (auto = match the output format)",
    )
    parser.add_argument(
        "--float-placement",
        default=os.getenv("MFX_FLOAT_PLACEMENT", "H"),
        help="LaTeX float placement for tables and figures",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Minimal output",
    )

    args = parser.parse_args(argv)
    sections = [s.upper() for s in args.sections] or list(SECTIONS.keys())
    unknown = [s for s in sections if s not in SECTIONS]
    if unknown:
        parser.error(f"unknown sections: {', '.join(unknown)}")

    # Describe mode
    if args.describe:
        for s_id in sections:
            module = importlib.import_module(f"tutorial.{SECTIONS[s_id]['module']}")
            print("=" * 70)
            print(f"{s_id}: {SECTIONS[s_id]['name']}")
            print("=" * 70)
            print(module.describe())
            print()
        return 0

    fmt = args.format or SUFFIXES.get(os.path.splitext(args.output)[1].lower(), DOCUMENT["default_format"])

    try:
        set_option("table_style", args.table_style)
        set_option("float_placement", args.float_placement)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    try:
        document = run_document(sections, verbose=not args.quiet)
    except CellExecutionError as e:
        print(f"\nFAILED: {e}", file=sys.stderr)
        return 1

    path = write_document(document, args.output, fmt=fmt)

    if not args.quiet:
        print("\n" + "=" * 70)
        print(f"COMPLETE: {path}")
        print("=" * 70)

    return 0


if __name__ == "__main__":
    sys.exit(main())
