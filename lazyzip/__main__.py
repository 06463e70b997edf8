"""
Copyright 2025 DNAi inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

"""
Command-line interface for LAZYZIP (``lazyzip``).

This module implements a small CLI on top of the reader. It only depends on the
Python standard library.

Supported commands (via ``python -m lazyzip``):

- ``list``    : List entries in an archive
- ``info``    : Show a detailed table of entries
- ``test``    : Read every entry and verify its CRC32
- ``cat``     : Write the contents of one entry to standard output
- ``extract`` : Extract entries to a directory

Example usages:

    python -m lazyzip list archive.zip
    python -m lazyzip info archive.zip --format json
    python -m lazyzip extract archive.zip -d output
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import ZipReader, __version__
from .errors import ZipError
from .utils import safe_extract_path

COPY_CHUNK_SIZE = 1024 * 1024


def _print_error(message: str, exit_code: int = 1) -> None:
    """Print an error message to stderr and exit with the given code."""
    sys.stderr.write(f"lazyzip: {message}\n")
    sys.exit(exit_code)


def _cmd_list(archive: Path) -> None:
    """List all entries in an archive, one per line, in directory order."""
    with ZipReader(archive) as z:
        for name in z.namelist():
            print(name)


def _cmd_info(archive: Path, format: str = "text") -> None:
    """Print a table (or JSON document) with metadata for each entry."""
    with ZipReader(archive) as z:
        if format == "json":
            document = {
                "archive": str(archive),
                "comment": z.comment,
                "entries": [
                    {
                        "name": entry.name,
                        "method": entry.method_name,
                        "compressed_size": entry.compressed_size,
                        "uncompressed_size": entry.uncompressed_size,
                        "crc32": f"{entry.crc32:08x}",
                        "modified": entry.date_time.isoformat(),
                        "data_descriptor": entry.has_data_descriptor,
                        "comment": entry.comment,
                    }
                    for entry in z
                ],
            }
            print(json.dumps(document, indent=2))
            return

        print(f"Archive: {archive}")
        if z.comment:
            print(f"Archive comment: {z.comment}")
        print("=" * 80)
        print(f"{'Name':36}  {'Size':>10}  {'Compr.':>10}  {'Method':>8}  {'CRC32':>8}  {'Modified':>19}")
        print("-" * 80)
        for entry in z:
            name = entry.name if len(entry.name) <= 36 else entry.name[:33] + "..."
            print(
                f"{name:36}  {entry.uncompressed_size:10d}  {entry.compressed_size:10d}  "
                f"{entry.method_name[:8]:>8}  {entry.crc32:08x}  {entry.date_time:%Y-%m-%d %H:%M:%S}"
            )


def _cmd_test(archive: Path) -> int:
    """Test archive integrity without extracting.

    Returns:
        Exit code: 0 if every entry verifies, 1 otherwise.
    """
    with ZipReader(archive) as z:
        print(f"Testing archive: {archive}")
        print(f"Entries: {len(z)}")
        print("-" * 80)

        # Keyed by entry, since names may repeat
        failures = dict(z.test())
        for entry in z.entries():
            error = failures.get(entry)
            if error is not None:
                print(f"  FAIL: {entry.name} - {error}")
            else:
                print(f"  OK: {entry.name}")

    print("-" * 80)
    if failures:
        print(f"Status: FAILED ({len(failures)} of {len(z)} entries)")
        return 1
    print("Status: OK")
    return 0


def _cmd_cat(archive: Path, name: str) -> None:
    """Write the contents of one entry to standard output."""
    out = sys.stdout.buffer
    with ZipReader(archive) as z:
        try:
            src = z.open(name)
        except KeyError:
            _print_error(f"No entry named {name!r} in {archive}")
        with src:
            while True:
                chunk = src.read(COPY_CHUNK_SIZE)
                if not chunk:
                    break
                out.write(chunk)
    out.flush()


def _cmd_extract(archive: Path, output_dir: Path, names: Optional[List[str]] = None, quiet: bool = False) -> None:
    """Extract entries of *archive* into *output_dir*.

    Directory entries are created as directories; file entries are written
    with their relative paths preserved.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    with ZipReader(archive) as z:
        if names:
            missing = [name for name in names if z.get_info(name) is None]
            if missing:
                _print_error(f"No entry named {missing[0]!r} in {archive}")
            entries = [z.get_info(name) for name in names]
        else:
            entries = z.entries()

        for info in entries:
            target_path = safe_extract_path(output_dir, info.name)

            if info.is_dir:
                target_path.mkdir(parents=True, exist_ok=True)
                continue

            target_path.parent.mkdir(parents=True, exist_ok=True)

            with z.open(info) as src, open(target_path, "wb") as dst:
                # Stream copy in chunks to support large files
                while True:
                    chunk = src.read(COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    dst.write(chunk)

            if not quiet:
                print(f"  extracted: {info.name}")


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the top-level argument parser."""
    parser = argparse.ArgumentParser(
        prog="lazyzip",
        description="LAZYZIP - Pure Python streaming ZIP reader (library and CLI).",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log archive decoding details to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # list
    p_list = subparsers.add_parser("list", help="List entries in an archive")
    p_list.add_argument("archive", type=Path, help="Path to the ZIP archive")

    # info
    p_info = subparsers.add_parser("info", help="Show detailed info about archive entries")
    p_info.add_argument("archive", type=Path, help="Path to the ZIP archive")
    p_info.add_argument(
        "--format",
        type=str,
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )

    # test
    p_test = subparsers.add_parser("test", help="Read every entry and verify its CRC32")
    p_test.add_argument("archive", type=Path, help="Path to the ZIP archive")

    # cat
    p_cat = subparsers.add_parser("cat", help="Write the contents of an entry to standard output")
    p_cat.add_argument("archive", type=Path, help="Path to the ZIP archive")
    p_cat.add_argument("name", type=str, help="Entry name")

    # extract
    p_extract = subparsers.add_parser("extract", help="Extract entries to a directory")
    p_extract.add_argument("archive", type=Path, help="Path to the ZIP archive")
    p_extract.add_argument("names", nargs="*", help="Entries to extract (default: all)")
    p_extract.add_argument(
        "-d",
        "--directory",
        type=Path,
        default=Path("."),
        help="Output directory (default: current directory)",
    )
    p_extract.add_argument("-q", "--quiet", action="store_true", help="Do not list extracted entries")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the LAZYZIP CLI.

    This function is invoked when running:

        python -m lazyzip ...

    or, via the console script:

        lazyzip ...
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    try:
        if args.command == "list":
            _cmd_list(args.archive)
        elif args.command == "info":
            _cmd_info(args.archive, format=args.format)
        elif args.command == "test":
            sys.exit(_cmd_test(args.archive))
        elif args.command == "cat":
            _cmd_cat(args.archive, args.name)
        elif args.command == "extract":
            _cmd_extract(args.archive, args.directory, names=args.names, quiet=args.quiet)
    except ZipError as e:
        _print_error(str(e), exit_code=1)
    except FileNotFoundError as e:
        _print_error(f"File not found: {e.filename}", exit_code=2)
    except PermissionError as e:
        _print_error(f"Permission denied: {e.filename}", exit_code=2)
    except KeyboardInterrupt:
        _print_error("Interrupted by user", exit_code=130)


if __name__ == "__main__":
    main()
