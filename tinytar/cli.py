from __future__ import annotations

import os
import sys
import time
import argparse
from typing import List, Optional, Tuple

from tinytar import __version__
from tinytar.clock import select_time_source, TIME_SOURCES
from tinytar.errors import (
    TinyTarError,
    CorruptArchiveError,
    NotRegularFileError,
    FieldOverflowError,
    UnsafeEntryNameError,
)
from tinytar.locator import logical_end
from tinytar.pathutil import resolve_inputs, safe_destination
from tinytar.reader import TarReader
from tinytar.writer import TarWriter


def _safe_utime(path: str, mtime: Optional[float]) -> None:
    """Best-effort utime that never raises.

    Args:
        path: Destination filesystem path to update.
        mtime: Modification time (seconds since epoch). If None, no change is made.
    """
    if mtime is None:
        return
    try:
        os.utime(path, (mtime, mtime))
    except OSError as exc:
        print(f"Warning: failed to set timestamps on {path}: {exc}", file=sys.stderr)


def _add_inputs(w: TarWriter, archive: str, inputs: List[str], *, quiet: bool) -> Tuple[int, int, int]:
    """Add each resolved input to ``w``; per-file failures are reported and skipped.

    Returns:
        (files added, inputs skipped, content bytes written)
    """
    added = skipped = nbytes = 0
    for p in resolve_inputs(inputs, exclude=archive):
        try:
            res = w.add_file(p)
        except NotRegularFileError as exc:
            print(f"Skipping: {exc}", file=sys.stderr)
            skipped += 1
            continue
        except FieldOverflowError as exc:
            print(f"Skipping: {p} ({exc})", file=sys.stderr)
            skipped += 1
            continue
        except OSError as exc:
            print(f"Warning: {p}: {exc.strerror or exc}", file=sys.stderr)
            skipped += 1
            continue
        if res.truncated:
            print(f"Warning: name truncated to 100 bytes: {res.name}", file=sys.stderr)
        if res.short_read:
            print(f"Warning: {p} shrank while reading; content padded with zeros", file=sys.stderr)
        if not quiet:
            print(f"{res.name} ({res.size})")
        added += 1
        nbytes += res.size
    return added, skipped, nbytes


def _summary(verb: str, added: int, skipped: int, nbytes: int, t0: float) -> None:
    dt = max(0.000001, time.time() - t0)
    kib = nbytes / 1024.0
    print(f"Done: {verb} {added} files ({kib:.1f} KiB) in {dt:.1f}s; skipped={skipped}")


def cmd_create(archive: str, inputs: List[str], *, timestamp: str = "mtime", quiet: bool = False) -> bool:
    """Create a new archive from regular files.

    Args:
        archive: Output archive path (truncated if it exists).
        inputs: File paths or wildcard patterns.
        timestamp: Which file time to store ("mtime" or "atime").
        quiet: Limit output to the summary line.
    """
    t0 = time.time()
    with TarWriter(archive, time_source=select_time_source(timestamp)) as w:
        added, skipped, nbytes = _add_inputs(w, archive, inputs, quiet=quiet)
        w.finalize()
    _summary("archived", added, skipped, nbytes, t0)
    return True


def cmd_append(archive: str, inputs: List[str], *, timestamp: str = "mtime", quiet: bool = False) -> bool:
    """Append files to an existing archive, overwriting its trailer.

    The archive is scanned first; if it cannot be parsed nothing is written.
    """
    t0 = time.time()
    with TarWriter(archive, append=True, time_source=select_time_source(timestamp)) as w:
        added, skipped, nbytes = _add_inputs(w, archive, inputs, quiet=quiet)
        w.finalize()
    _summary("appended", added, skipped, nbytes, t0)
    return True


def cmd_list(archive: str) -> bool:
    """List archive entries as ``NAME (SIZE bytes)``.

    Entries before a corrupt header are printed before the error propagates.
    """
    with TarReader(archive) as r:
        for e in r:
            print(f"{e.name} ({e.size} bytes)", flush=True)
    return True


def cmd_extract(archive: str, *, outdir: str = ".", quiet: bool = False) -> bool:
    """Extract every entry into ``outdir``.

    Entries whose destination cannot be written are reported and skipped; the
    run continues with the next entry.
    """
    t0 = time.time()
    extracted = skipped = nbytes = 0
    with TarReader(archive) as r:
        for e in r:
            try:
                dst = safe_destination(outdir, e.name)
            except UnsafeEntryNameError as exc:
                print(f"Warning: skipping {e.name}: {exc}", file=sys.stderr)
                skipped += 1
                continue
            try:
                r.extract(e, dst)
            except OSError as exc:
                print(f"Warning: {dst}: {exc.strerror or exc}", file=sys.stderr)
                skipped += 1
                continue
            _safe_utime(dst, e.mtime)
            if not quiet:
                print(f"{e.name} ({e.size})")
            extracted += 1
            nbytes += e.size
    _summary("extracted", extracted, skipped, nbytes, t0)
    return True


def cmd_verify(archive: str) -> bool:
    """Recompute every header checksum.

    Prints:
        "OK" on success, otherwise each failing entry followed by "FAIL".
    """
    with TarReader(archive) as r:
        ok = r.verify()
        for e, reason in r.failures:
            print(f"{e.name}: {reason} (header at offset {e.header_offset})")
    print("OK" if ok else "FAIL")
    return ok


def cmd_info(archive: str) -> bool:
    """Show archive information.

    Args:
        archive: Path to a tar archive.
    """
    with TarReader(archive) as r:
        entries = r.list()
        end = logical_end(r.stream)
        size = os.fstat(r.f.fileno()).st_size
    print(f"Archive: {archive}")
    print(f"  Entries: {len(entries)}")
    print(f"  Content bytes: {sum(e.size for e in entries)}")
    print(f"  Logical end: {end}")
    print(f"  File size: {size}")
    print(f"  Bytes beyond trailer: {max(0, size - end)}")
    bad = sum(1 for e in entries if not e.checksum_ok)
    if bad:
        print(f"  Header checksum mismatches: {bad}")
    return True


_COMMANDS = ("create", "append", "list", "extract", "verify", "info")

# Classic tar spellings; CP/M shells upper-case them
_MODE_FLAGS = {
    "-cf": "create",
    "-rf": "append",
    "-tf": "list",
    "-xf": "extract",
}


def _normalize_argv(argv: List[str]) -> List[str]:
    if len(argv) == 1 and not argv[0].startswith("-") and argv[0] not in _COMMANDS:
        return ["list", argv[0]]
    if argv and argv[0].lower() in _MODE_FLAGS:
        return [_MODE_FLAGS[argv[0].lower()]] + list(argv[1:])
    return list(argv)


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="tinytar",
        description="Tiny TAR archiving tool (flat USTAR archives of regular files)",
        epilog=(
            "A single bare ARCHIVE argument lists it. Classic -cf/-rf/-tf/-xf spellings are accepted."
        ),
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_create = sub.add_parser("create", help="Create archive from files")
    ap_create.add_argument("archive", help="Output archive path")
    ap_create.add_argument("inputs", nargs="+", help="Input files (wildcards allowed)")
    ap_create.add_argument("--timestamp", choices=sorted(TIME_SOURCES), default="mtime", help="File time stored in headers (default: mtime)")
    ap_create.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_append = sub.add_parser("append", help="Append files to archive")
    ap_append.add_argument("archive", help="Existing archive path")
    ap_append.add_argument("inputs", nargs="+", help="Input files (wildcards allowed)")
    ap_append.add_argument("--timestamp", choices=sorted(TIME_SOURCES), default="mtime", help="File time stored in headers (default: mtime)")
    ap_append.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_list = sub.add_parser("list", help="List all files in archive")
    ap_list.add_argument("archive", help="Archive path")

    ap_extract = sub.add_parser("extract", help="Extract all files from archive")
    ap_extract.add_argument("archive", help="Archive path")
    ap_extract.add_argument("--outdir", default=".", help="Output directory")
    ap_extract.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_verify = sub.add_parser("verify", help="Recompute header checksums")
    ap_verify.add_argument("archive", help="Archive path")

    ap_info = sub.add_parser("info", help="Show archive information")
    ap_info.add_argument("archive", help="Archive path")

    args = ap.parse_args(_normalize_argv(sys.argv[1:] if argv is None else argv))
    try:
        if args.cmd == "create":
            cmd_create(args.archive, args.inputs, timestamp=args.timestamp, quiet=args.quiet)
        elif args.cmd == "append":
            cmd_append(args.archive, args.inputs, timestamp=args.timestamp, quiet=args.quiet)
        elif args.cmd == "list":
            cmd_list(args.archive)
        elif args.cmd == "extract":
            cmd_extract(args.archive, outdir=args.outdir, quiet=args.quiet)
        elif args.cmd == "verify":
            ok = cmd_verify(args.archive)
            sys.exit(0 if ok else 1)
        elif args.cmd == "info":
            cmd_info(args.archive)
        else:
            raise RuntimeError("Unknown command")
    except KeyboardInterrupt:
        print("\n^C", file=sys.stderr)
        sys.exit(130)
    except CorruptArchiveError as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.cmd == "append":
            print("Archive left unchanged.", file=sys.stderr)
        sys.exit(2)
    except (TinyTarError, OSError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
