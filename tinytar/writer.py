from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from typing import BinaryIO, Optional

from .blocks import BlockStream, new_block
from .clock import FileTimeSource
from .constants import NAME_SIZE
from .content import write_content
from .errors import NotRegularFileError, TinyTarError
from .header import display_name, encode_header, encode_name
from .locator import find_append_offset
from .pathutil import entry_name


@dataclass
class AddResult:
    name: str
    size: int
    mtime: int
    header_offset: int
    truncated: bool = False
    short_read: bool = False


class TarWriter:
    """Writes flat USTAR archives, either fresh or appended to an existing one.

    In append mode the existing archive is scanned on open; entries are then
    written over its old trailer and ``finalize`` writes a new one. A corrupt
    archive raises from ``open`` before any byte is written.
    """

    def __init__(self, out_path: str, *, append: bool = False, time_source: Optional[FileTimeSource] = None):
        self.out_path = out_path
        self.append = append
        self.time_source = time_source or FileTimeSource()
        self.f: Optional[BinaryIO] = None
        self.stream: Optional[BlockStream] = None
        self.start_offset = 0
        self._buf = new_block()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.f is not None:
            return
        if not self.append:
            self.f = open(self.out_path, "wb")
            self.stream = BlockStream(self.f)
            return
        self.f = open(self.out_path, "r+b")
        try:
            self.stream = BlockStream(self.f)
            self.start_offset = find_append_offset(self.stream)
            self.stream.seek(self.start_offset)
        except (TinyTarError, OSError):
            self.close()
            raise

    def close(self):
        if self.f is not None:
            self.f.close()
            self.f = None
            self.stream = None

    def add_file(self, fs_path: str, arc_name: Optional[str] = None) -> AddResult:
        """Write one regular file as header + padded content.

        Raises:
            NotRegularFileError: ``fs_path`` is a directory, device, fifo, ...
            FieldOverflowError: size or timestamp does not fit its header field.
            OSError: the input cannot be opened or read. Anything already
                written for this entry is rolled back.
        """
        if self.f is None:
            raise RuntimeError("Archive not open")
        st = os.stat(fs_path)
        if not stat.S_ISREG(st.st_mode):
            raise NotRegularFileError(f"{fs_path} (not a regular file)")
        arc = arc_name if arc_name is not None else entry_name(fs_path)
        start = self.stream.tell()
        with open(fs_path, "rb") as src:
            st = os.fstat(src.fileno())
            size = st.st_size
            mtime = self.time_source.timestamp(st)
            header = encode_header(arc, size, mtime)
            try:
                self.stream.write_block(header)
                copied = write_content(self.stream, src, size, self._buf)
            except OSError:
                self.stream.seek(start)
                self.stream.truncate()
                raise
        result = AddResult(
            name=display_name(encode_name(arc)),
            size=size,
            mtime=mtime,
            header_offset=start,
            truncated=len(os.fsencode(arc)) > NAME_SIZE,
            short_read=copied < size,
        )
        return result

    def finalize(self):
        """Write the two-block trailer and drop anything stale beyond it."""
        if self.f is None:
            raise RuntimeError("Archive not open")
        self.stream.write_trailer()
        self.stream.truncate()
        self.f.flush()
