from __future__ import annotations

import io
from typing import BinaryIO, Optional

from .constants import RECORD_SIZE, TRAILER_BLOCKS, ZERO_BLOCK


def padded_size(n: int) -> int:
    """Round ``n`` up to a whole number of records."""
    return ((n + RECORD_SIZE - 1) // RECORD_SIZE) * RECORD_SIZE


def new_block() -> bytearray:
    return bytearray(RECORD_SIZE)


class BlockStream:
    """Sequential 512-byte record I/O over an open archive handle.

    A short final read (fewer than 512 bytes) is reported as end of input, not
    as an error; the partial bytes are not part of the archive.
    """

    def __init__(self, fh: BinaryIO):
        self.fh = fh

    def read_into(self, buf: bytearray) -> bool:
        if len(buf) != RECORD_SIZE:
            raise ValueError("block buffer must be 512 bytes")
        view = memoryview(buf)
        got = 0
        while got < RECORD_SIZE:
            n = self.fh.readinto(view[got:])
            if not n:
                return False
            got += n
        return True

    def read_block(self) -> Optional[bytes]:
        buf = new_block()
        if not self.read_into(buf):
            return None
        return bytes(buf)

    def write_block(self, block) -> None:
        if len(block) != RECORD_SIZE:
            raise ValueError("block must be 512 bytes")
        self.fh.write(block)

    def write_trailer(self) -> None:
        for _ in range(TRAILER_BLOCKS):
            self.fh.write(ZERO_BLOCK)

    def skip(self, n_bytes: int) -> None:
        self.fh.seek(padded_size(n_bytes), io.SEEK_CUR)

    def rewind(self, blocks: int = 1) -> None:
        self.fh.seek(-blocks * RECORD_SIZE, io.SEEK_CUR)

    def tell(self) -> int:
        return self.fh.tell()

    def seek(self, offset: int) -> None:
        self.fh.seek(offset)

    def truncate(self) -> None:
        self.fh.truncate(self.fh.tell())
