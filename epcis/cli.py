"""
EPCIS Event Hash Generator command line utility

Prints the hash identifiers (and optionally pre-hash strings) of every event
in the given EPCIS documents.

Usage:
    python -m epcis.cli document.json other.xml
    python -m epcis.cli -a sha-256 -a sha3-512 -p events/
    cat document.json | python -m epcis.cli -
    python -m epcis.cli -b documents/          # writes <name>.hashes files
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, TextIO

from epcis.constants import PREHASH
from epcis.context import HashContext
from epcis.exceptions import EventHashError
from epcis.hash_event import EventHashGenerator

logger = logging.getLogger(__name__)

HASHES_SUFFIX = ".hashes"
PREHASHES_SUFFIX = ".prehashes"
FORMATS = ("json", "xml")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="epcis-hash",
        description="EPCIS Event Hash Generator: [options] file.. directory.., - to read from stdin",
    )
    parser.add_argument("paths", nargs="+", help="EPCIS documents, directories, or - for stdin")
    parser.add_argument(
        "-a", "--algorithm", action="append", dest="algorithms",
        help="Hash algorithm (repeatable): sha-1, sha-224, sha-256, sha-384, sha-512, "
             "sha3-224, sha3-256, sha3-384, sha3-512, md5. Default: sha-256",
    )
    parser.add_argument("-p", "--prehash", action="store_true", help="Also output the pre-hash strings")
    parser.add_argument("-j", "--join", default=None, help="String used to join pre-hash lines, e.g. '\\n'")
    parser.add_argument("-e", "--enforce-format", choices=FORMATS, help="Parse all inputs as json or xml")
    parser.add_argument(
        "-b", "--batch", action="store_true",
        help="Write hashes to <file>.hashes (and <file>.prehashes) next to each input",
    )
    parser.add_argument("-c", "--cbv-version", default="2.0", help="CBV version: 2.0 or 2.1 (default 2.0)")
    parser.add_argument("-i", "--ignore-fields", default=None, help="Comma-separated fields to exclude")
    return parser


def locate_files(path: Path) -> List[Path]:
    """Expand a directory into its .json/.xml files (recursively)."""
    if path.is_dir():
        return sorted(p for p in path.rglob("*") if p.is_file() and p.suffix.lower() in (".json", ".xml"))
    return [path]


def detect_format(path: Optional[Path], enforced: Optional[str]) -> str:
    if enforced:
        return enforced
    if path is not None and path.suffix.lower() == ".xml":
        return "xml"
    return "json"


def generate(generator: EventHashGenerator, stream, fmt: str, outputs: List[str]) -> Iterator[Dict[str, str]]:
    if fmt == "xml":
        return generator.from_xml(stream, *outputs)
    return generator.from_json(stream, *outputs)


def write_results(results: Iterable[Dict[str, str]], hashes: TextIO, prehashes: Optional[TextIO] = None) -> int:
    """Write each event's outputs; pre-hashes go to `prehashes` when given. Returns the event count."""
    count = 0
    for result in results:
        count += 1
        for name, value in result.items():
            target = prehashes if name == PREHASH and prehashes is not None else hashes
            target.write(value + "\n")
    return count


def process_file(generator: EventHashGenerator, path: Path, args, outputs: List[str]) -> int:
    fmt = detect_format(path, args.enforce_format)
    with open(path, "rb") as source:
        results = generate(generator, source, fmt, outputs)
        if not args.batch:
            return write_results(results, sys.stdout)

        with open(path.with_suffix(HASHES_SUFFIX), "w", encoding="utf-8") as hashes:
            if not args.prehash:
                return write_results(results, hashes)
            with open(path.with_suffix(PREHASHES_SUFFIX), "w", encoding="utf-8") as prehashes:
                return write_results(results, hashes, prehashes)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    outputs = list(args.algorithms or ["sha-256"])
    if args.prehash:
        outputs.insert(0, PREHASH)

    try:
        context = (
            HashContext()
            .with_cbv_version(args.cbv_version)
            .with_excluded_fields(args.ignore_fields)
            .with_prehash_join(args.join)
        )
    except EventHashError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1
    generator = EventHashGenerator(context)

    if args.paths == ["-"]:
        if args.batch:
            print("✗ Batch mode is not supported when reading from stdin", file=sys.stderr)
            return 1
        fmt = detect_format(None, args.enforce_format)
        try:
            write_results(generate(generator, sys.stdin.buffer, fmt, outputs), sys.stdout)
        except EventHashError as e:
            print(f"✗ stdin: {e}", file=sys.stderr)
            return 1
        return 0

    status = 0
    for raw in args.paths:
        for path in locate_files(Path(raw)):
            try:
                count = process_file(generator, path, args, outputs)
                logger.info("%s: %d events", path, count)
            except (EventHashError, OSError) as e:
                print(f"✗ {path}: {e}", file=sys.stderr)
                status = 1
    return status


if __name__ == "__main__":
    sys.exit(main())
