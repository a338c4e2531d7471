from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Iterable, List, Optional, Tuple

from fo2dat.entry import printable_name
from fo2dat.errors import Dat2Error, EntryNotFound, FormatError
from fo2dat.pathutil import to_archive_name, to_local_path
from fo2dat.reader import ArchiveReader
from fo2dat.writer import ArchiveWriter


log = logging.getLogger(__name__)


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    # Undecodable name bytes are kept as surrogates; show them escaped
    for stream in (sys.stdout, sys.stderr):
        if hasattr(stream, "reconfigure"):
            stream.reconfigure(errors="backslashreplace")
    logging.basicConfig(level=level, format="%(levelname)s: %(name)s: %(message)s", stream=sys.stderr)


def _iter_inputs(inputs: Iterable[str], base: Optional[str]) -> Iterable[Tuple[str, str]]:
    """Yield (archive name, source path) for files and directory trees, sorted per directory.

    Args:
        inputs: Files or directories to store.
        base: When given, names are relative to this directory. Otherwise a
            directory's contents are stored relative to the directory itself
            and a file is stored under its basename.
    """
    for p in inputs:
        if os.path.isdir(p):
            root_for_names = base or p
            for root, dirs, files in os.walk(p):
                dirs.sort()
                for fn in sorted(files):
                    src = os.path.join(root, fn)
                    yield to_archive_name(os.path.relpath(src, root_for_names)), src
        elif os.path.isfile(p):
            rel = os.path.relpath(p, base) if base else os.path.basename(p)
            yield to_archive_name(rel), p
        else:
            raise FileNotFoundError(f"No such file or directory: {p}")


def cmd_create(output: str, inputs: List[str], *, base: Optional[str] = None, compress: bool = False, legacy: bool = False) -> bool:
    """Create an archive from files/directories.

    Args:
        output: Destination archive path.
        inputs: Files or directories to add, in order.
        base: Directory the stored names are made relative to.
        compress: Deflate each file before storing it.
        legacy: Write tree_size without its own 4 bytes.
    """
    w = ArchiveWriter(tree_size_includes_self=not legacy)
    for name, src in _iter_inputs(inputs, base):
        e = w.add_file(name, src, compress=compress)
        log.info("added %s (%d -> %d bytes)", name, e.decompressed_size, e.packed_size)
    size = w.write(output)
    print(f"Done: {len(w.entries)} files, {size} bytes written to {output}")
    return True


def cmd_list(archive: str, *, show_all: bool = False, legacy: bool = False) -> bool:
    """List archive entries as name, decompressed size, packed size."""
    r = ArchiveReader.from_path(archive, tree_size_includes_self=not legacy)
    entries = r.all_entries() if show_all else r.list()
    for e in entries:
        print(f"{e.decompressed_size}\t{e.packed_size}\t{e.display_name}")
    return True


def cmd_info(archive: str, *, legacy: bool = False) -> bool:
    r = ArchiveReader.from_path(archive, tree_size_includes_self=not legacy)
    flagged = sum(1 for e in r.list() if e.is_declared_compressed())
    print(f"file_size:  {r.file_size}")
    print(f"tree_size:  {r.tree_size}")
    print(f"data_size:  {r.data_size}")
    print(f"entries:    {len(r)}")
    print(f"duplicates: {r.duplicate_count}")
    print(f"flagged compressed: {flagged}")
    return True


def cmd_extract(archive: str, *, outdir: str = ".", names: Optional[List[str]] = None, quiet: bool = False, legacy: bool = False) -> bool:
    """Extract entries to ``outdir``. Returns False when any entry failed."""
    r = ArchiveReader.from_path(archive, tree_size_includes_self=not legacy)
    if names:
        # DAT2 names are matched case-insensitively, as the game does
        wanted = {to_archive_name(n).lower(): n for n in names}
        selected = {e.name for e in r.list() if e.name.lower() in wanted}
        missing = set(wanted) - {n.lower() for n in selected}
        for m in sorted(missing):
            print(f"Error: {EntryNotFound(wanted[m])}", file=sys.stderr)
        results = (res for res in r.extract_all() if res.name in selected)
        failed = len(missing)
    else:
        results = r.extract_all()
        failed = 0

    written = 0
    for res in results:
        if not res.ok:
            print(f"Error: {res.error}", file=sys.stderr)
            failed += 1
            continue
        try:
            dst = os.path.join(outdir, to_local_path(res.name))
        except ValueError as exc:
            print(f"Error: {printable_name(res.name)}: {exc}", file=sys.stderr)
            failed += 1
            continue
        try:
            os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
            with open(dst, "wb") as fh:
                fh.write(res.data)
        except OSError as exc:
            print(f"Error: {printable_name(res.name)}: {exc}", file=sys.stderr)
            failed += 1
            continue
        written += 1
        if not quiet:
            print(f"  extracting: {printable_name(res.name)}")
    print(f"Summary: extracted={written} failed={failed}")
    return failed == 0


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(prog="fo2dat", description="List, extract and create DAT2 archives")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")
    ap.add_argument(
        "--legacy-tree-size",
        dest="legacy",
        action="store_true",
        help="tree_size excludes its own 4 bytes (earlier format revision)",
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_create = sub.add_parser("create", help="Create archive")
    ap_create.add_argument("output", help="Output .dat path")
    ap_create.add_argument("inputs", nargs="+", help="Input files/directories")
    ap_create.add_argument("--base", help="Store names relative to this directory")
    ap_create.add_argument("--compress", action="store_true", help="zlib-compress each file")

    ap_list = sub.add_parser("list", help="List archive contents")
    ap_list.add_argument("archive", help="Archive path")
    ap_list.add_argument("--all", dest="show_all", action="store_true", help="Include shadowed duplicate entries")

    ap_info = sub.add_parser("info", help="Show archive information")
    ap_info.add_argument("archive", help="Archive path")

    ap_extract = sub.add_parser("extract", help="Extract files")
    ap_extract.add_argument("archive", help="Archive path")
    ap_extract.add_argument("--outdir", default=".", help="Output directory")
    ap_extract.add_argument("names", nargs="*", help="Specific entries to extract")
    ap_extract.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    # Entry names may follow extract's options; argparse stops filling "names" at the first option
    args, extra = ap.parse_known_args(argv)
    if extra:
        if args.cmd != "extract" or any(x.startswith("-") for x in extra):
            ap.error(f"unrecognized arguments: {' '.join(extra)}")
        args.names = list(args.names) + extra
    _configure_logging(args.verbose)
    try:
        if args.cmd == "create":
            cmd_create(args.output, args.inputs, base=args.base, compress=args.compress, legacy=args.legacy)
        elif args.cmd == "list":
            cmd_list(args.archive, show_all=args.show_all, legacy=args.legacy)
        elif args.cmd == "info":
            cmd_info(args.archive, legacy=args.legacy)
        elif args.cmd == "extract":
            ok = cmd_extract(args.archive, outdir=args.outdir, names=args.names, quiet=args.quiet, legacy=args.legacy)
            sys.exit(0 if ok else 1)
        else:
            raise RuntimeError("Unknown command")
    except FormatError as e:
        print(f"Error: invalid archive: {e}", file=sys.stderr)
        sys.exit(2)
    except (Dat2Error, OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
