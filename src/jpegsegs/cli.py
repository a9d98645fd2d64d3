import argparse
import logging
import sys
from pathlib import Path

from .exceptions import JPEGSegsError
from .tools import copy_file, print_file, strip_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jpegsegs", description="JPEG segment tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug messages")

    subparsers = parser.add_subparsers(dest="command", required=True)
    parser_print = subparsers.add_parser("print", help="Print JPEG markers and segment lengths")
    parser_print.add_argument("path", help="Path to the JPEG file")

    parser_copy = subparsers.add_parser(
        "copy", help="Unpack a JPEG file one segment at a time and repackage it, with MPF images"
    )
    parser_copy.add_argument("infile")
    parser_copy.add_argument("outfile")

    parser_strip = subparsers.add_parser(
        "strip", help="Copy the first image without COM, APP and JPG segments"
    )
    parser_strip.add_argument("infile")
    parser_strip.add_argument("outfile")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "print":
            with open(Path(args.path), "rb") as f:
                print_file(f)
        elif args.command == "copy":
            with open(Path(args.infile), "rb") as reader, open(Path(args.outfile), "wb") as writer:
                copy_file(reader, writer)
        elif args.command == "strip":
            with open(Path(args.infile), "rb") as reader, open(Path(args.outfile), "wb") as writer:
                strip_file(reader, writer)
    except (JPEGSegsError, OSError) as e:
        print(f"jpegsegs: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
