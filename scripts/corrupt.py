from __future__ import annotations

import argparse
import os
import sys

from tinytar.constants import MAGIC_OFFSET
from tinytar.errors import TinyTarError
from tinytar.reader import TarReader


def _flip_byte(path: str, offset: int, xor_val: int = 0xFF) -> None:
    if offset < 0:
        raise ValueError("Offset must be non-negative")
    with open(path, "r+b") as f:
        f.seek(offset)
        b = f.read(1)
        if not b:
            raise ValueError("Offset beyond end of file")
        f.seek(offset)
        f.write(bytes([b[0] ^ (xor_val & 0xFF)]))
        f.flush()
        os.fsync(f.fileno())


def cmd_by_offset(args: argparse.Namespace) -> None:
    _flip_byte(args.archive, args.offset, xor_val=args.xor)
    print(f"Flipped 1 byte at offset {args.offset}")


def cmd_magic(args: argparse.Namespace) -> None:
    with TarReader(args.archive) as r:
        entries = r.list()
    if args.index < 0 or args.index >= len(entries):
        raise ValueError(f"Entry index out of range (0..{len(entries)-1})")
    off = entries[args.index].header_offset + MAGIC_OFFSET
    with open(args.archive, "r+b") as f:
        f.seek(off)
        f.write(b"XXXXX")
    print(f"Clobbered magic of entry {args.index} at archive offset {off}")


def cmd_truncate(args: argparse.Namespace) -> None:
    with open(args.archive, "r+b") as f:
        f.truncate(args.size)
    print(f"Truncated archive to {args.size} bytes")


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Damage tinytar archives for testing")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_off = sub.add_parser("by-offset", help="XOR one byte at an absolute offset")
    ap_off.add_argument("archive")
    ap_off.add_argument("offset", type=int)
    ap_off.add_argument("--xor", type=lambda s: int(s, 0), default=0xFF, help="XOR mask (default 0xFF)")
    ap_off.set_defaults(func=cmd_by_offset)

    ap_magic = sub.add_parser("magic", help="Overwrite the ustar magic of entry N (0-based)")
    ap_magic.add_argument("archive")
    ap_magic.add_argument("index", type=int)
    ap_magic.set_defaults(func=cmd_magic)

    ap_trunc = sub.add_parser("truncate", help="Cut the archive to SIZE bytes")
    ap_trunc.add_argument("archive")
    ap_trunc.add_argument("size", type=int)
    ap_trunc.set_defaults(func=cmd_truncate)

    args = ap.parse_args(argv)
    try:
        args.func(args)
    except (TinyTarError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
