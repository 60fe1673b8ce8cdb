from __future__ import annotations

import os
from dataclasses import dataclass
from typing import BinaryIO, Iterator, List, Optional, Tuple

from .blocks import BlockStream, new_block, padded_size
from .content import read_content
from .errors import CorruptArchiveError
from .header import checksum_matches, decode_header, is_valid, is_zero_block


@dataclass
class Entry:
    name: str
    size: int
    mtime: int
    mode: int
    header_offset: int
    data_offset: int
    checksum_ok: bool


class TarReader:
    """Sequential reader for flat USTAR archives.

    Iterating yields one Entry per header and stops at the first zero block.
    Content the caller does not extract is skipped before the next header is
    read, so traversal stays aligned whatever the caller does with an entry.
    """

    def __init__(self, path: str):
        self.path = path
        self.f: Optional[BinaryIO] = None
        self.stream: Optional[BlockStream] = None
        self.failures: List[Tuple[Entry, str]] = []
        self._pending: Optional[Entry] = None
        self._buf = new_block()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.f is not None:
            return
        self.f = open(self.path, "rb")
        self.stream = BlockStream(self.f)

    def close(self):
        if self.f is not None:
            self.f.close()
            self.f = None
            self.stream = None

    def __iter__(self) -> Iterator[Entry]:
        if self.f is None:
            raise RuntimeError("Archive not open")
        self.stream.seek(0)
        self._pending = None
        block = new_block()
        while True:
            self._skip_pending()
            offset = self.stream.tell()
            if not self.stream.read_into(block):
                return
            if is_zero_block(block):
                return
            if not is_valid(block):
                raise CorruptArchiveError(
                    f"Invalid TAR format: missing ustar magic at offset {offset}.", offset=offset
                )
            h = decode_header(block)
            entry = Entry(
                name=h.name,
                size=h.size,
                mtime=h.mtime,
                mode=h.mode,
                header_offset=offset,
                data_offset=self.stream.tell(),
                checksum_ok=checksum_matches(block),
            )
            self._pending = entry
            yield entry

    def _skip_pending(self):
        if self._pending is None:
            return
        self.stream.seek(self._pending.data_offset)
        self.stream.skip(self._pending.size)
        self._pending = None

    def list(self) -> List[Entry]:
        return [e for e in self]

    def extract(self, entry: Entry, out_path: str):
        """Write ``entry``'s content to ``out_path``.

        The destination is opened before the archive is touched, so an OSError
        from ``open`` leaves the reader's position unchanged.
        """
        if self.f is None:
            raise RuntimeError("Archive not open")
        with open(out_path, "wb") as wf:
            self.stream.seek(entry.data_offset)
            read_content(self.stream, wf, entry.size, self._buf)

    def verify(self) -> bool:
        """Check every header checksum and that every entry's content is present.

        Failures are collected in ``self.failures`` as (entry, reason) pairs.
        Structural corruption (missing magic) still raises CorruptArchiveError.
        """
        if self.f is None:
            raise RuntimeError("Archive not open")
        self.failures = []
        archive_size = os.fstat(self.f.fileno()).st_size
        for e in self:
            if not e.checksum_ok:
                self.failures.append((e, "header checksum mismatch"))
            if e.data_offset + padded_size(e.size) > archive_size:
                self.failures.append((e, "content truncated"))
        return not self.failures

