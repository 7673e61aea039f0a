"""
aiff8.__main__

CLI entry point.

This file is intentionally small:
- parse args
- run the conversion through the public API in aiff8
- report errors and pick the exit code
It must not contain parsing or dither logic.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

import aiff8
from aiff8.emit import format_diagnostics


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="convert",
        description="Convert 8- or 16-bit PCM AIFF/AIFC audio into an 8-bit unsigned C array.",
    )

    p.add_argument("path", nargs="?", help="Input .aiff/.aifc file.")
    p.add_argument("--dither", action="store_true", help="Enable noise-shaped dither for 16-bit input.")
    p.add_argument(
        "--no-noise",
        dest="noise",
        action="store_false",
        help="With --dither, apply error feedback only, without triangular noise.",
    )
    p.add_argument("--seed", type=int, default=None, help="Seed for the dither noise (reproducible output).")
    p.add_argument("--name", default=None, help="Array identifier (default: input base name without extension).")
    p.add_argument("--type", dest="c_type", default="", help="C type placed before the identifier, e.g. prog_uchar.")
    p.add_argument("--progmem", action="store_true", help="Add the PROGMEM attribute after the identifier.")
    p.add_argument("--columns", type=int, default=0, help="Values per line (0 keeps the array on one line).")
    p.add_argument("-o", "--output", default=None, help="Write the array to this file instead of stdout.")
    p.add_argument("-v", "--verbose", action="store_true", help="Log parsing details to stderr.")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.path:
        parser.print_usage(sys.stderr)
        return 1

    try:
        conv = aiff8.convert_file(
            args.path,
            name=args.name,
            dither=args.dither,
            seed=args.seed,
            noise=args.noise,
        )
        text = conv.to_c_array(c_type=args.c_type, progmem=args.progmem, columns=args.columns)
    except (aiff8.AiffError, OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    for line in format_diagnostics(conv.info):
        print(line, file=sys.stderr)

    if args.output:
        try:
            with open(args.output, "w", encoding="ascii") as f:
                f.write(text)
        except OSError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
    else:
        sys.stdout.write(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
