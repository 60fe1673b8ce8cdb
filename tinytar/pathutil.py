from __future__ import annotations

import glob
import os
from typing import Iterable, List, Optional

from .errors import UnsafeEntryNameError


def entry_name(fs_path: str) -> str:
    """Name stored in the archive for ``fs_path``: its base name (archives are flat)."""
    return os.path.basename(os.path.normpath(fs_path))


def _same_file(a: str, b: str) -> bool:
    try:
        return os.path.samefile(a, b)
    except OSError:
        return False


def resolve_inputs(specs: Iterable[str], *, exclude: Optional[str] = None) -> List[str]:
    """Expand input specs into the ordered list of paths to archive.

    Rules:
    - Specs containing wildcards are expanded with glob, sorted
    - Specs (or patterns) without a match are kept as given so the open
      failure is reported later
    - ``exclude`` (the archive being written) is dropped from the result
    """
    out: List[str] = []
    for spec in specs:
        matches = sorted(glob.glob(spec)) if glob.has_magic(spec) else []
        for p in matches or [spec]:
            if exclude is not None and _same_file(p, exclude):
                continue
            out.append(p)
    return out


def safe_destination(outdir: str, name: str) -> str:
    """Join an entry name onto ``outdir``, refusing names that escape it."""
    if not name:
        raise UnsafeEntryNameError("empty entry name")
    norm = name.replace("\\", "/")
    if norm.startswith("/") or os.path.isabs(name):
        raise UnsafeEntryNameError(f"absolute entry name: {name}")
    if any(part == ".." for part in norm.split("/")):
        raise UnsafeEntryNameError(f"entry name may not contain '..': {name}")
    return os.path.join(outdir or ".", name)
