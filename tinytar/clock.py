from __future__ import annotations

import os
import time
from typing import Callable, Dict, Tuple

from .constants import T_19800101


class FileTimeSource:
    """Pick the timestamp stored in a header from a file's stat result.

    Args:
        attr: ``os.stat_result`` attribute to read ("st_mtime" or "st_atime").
        replace_missing: Treat values at or before 1980-01-01 as "no timestamp"
            and store the current time instead. Only meaningful for sources
            that leave the field unset on some filesystems (access times).
        now: Current-time provider used by ``replace_missing``.
    """

    def __init__(
        self,
        attr: str = "st_mtime",
        *,
        replace_missing: bool = False,
        now: Callable[[], float] = time.time,
    ):
        self.attr = attr
        self.replace_missing = replace_missing
        self._now = now

    def now(self) -> int:
        return max(int(self._now()), T_19800101)

    def timestamp(self, st: os.stat_result) -> int:
        value = int(getattr(st, self.attr))
        if self.replace_missing and value <= T_19800101:
            return self.now()
        return value


# name -> (stat attribute, replace_missing)
TIME_SOURCES: Dict[str, Tuple[str, bool]] = {
    "mtime": ("st_mtime", False),
    "atime": ("st_atime", True),
}


def select_time_source(name: str = "mtime") -> FileTimeSource:
    try:
        attr, replace_missing = TIME_SOURCES[name]
    except KeyError:
        raise ValueError(f"unknown timestamp source: {name}") from None
    return FileTimeSource(attr, replace_missing=replace_missing)
