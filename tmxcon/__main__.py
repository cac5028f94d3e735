"""
Main entry point for the tmxcon converter.
"""

import argparse
import sys
from pathlib import Path
from .exporter import LayerExporter
from .targets import TARGETS, get_target
from .logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tmxcon",
        description="Convert Tiled TMX maps to console tile map binaries (one file per layer)"
    )
    parser.add_argument(
        "files",
        nargs="+",
        help="TMX files to convert"
    )
    parser.add_argument(
        "--console",
        default="gba",
        choices=sorted(TARGETS),
        help="Target console (default: gba)"
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Output directory (default: next to each input file)"
    )
    parser.add_argument(
        "--manifest",
        action="store_true",
        help="Also write a <map>.map.json file describing the exported layers"
    )
    parser.add_argument(
        "--jobs", "-j",
        type=int,
        default=1,
        help="Number of layers to export in parallel (default: 1)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed progress information"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Show debug information (implies verbose)"
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logger = setup_logging(args.verbose, args.debug)

    exporter = LayerExporter(
        get_target(args.console),
        output_dir=Path(args.output).resolve() if args.output else None,
        jobs=args.jobs,
        manifest=args.manifest,
    )

    failed = 0
    for filename in args.files:
        logger.info(f"Converting {filename}")
        try:
            written = exporter.export_file(filename)
        except Exception as e:
            # One bad map must not stop the batch
            failed += 1
            logger.error(f"{filename}: {type(e).__name__}: {e}", exc_info=args.debug)
            continue
        logger.info(f"Converted {filename} ({len(written)} files)")

    if failed:
        logger.warning(f"{failed} of {len(args.files)} files failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
