from __future__ import annotations

from typing import BinaryIO, Optional

from .blocks import BlockStream, new_block
from .constants import RECORD_SIZE
from .errors import TruncatedArchiveError


def write_content(out: BlockStream, src: BinaryIO, size: int, buf: Optional[bytearray] = None) -> int:
    """Copy exactly ``size`` bytes of ``src`` into the archive, one record at a time.

    The final record is zero-padded. If ``src`` ends early the missing bytes are
    written as zeros so the content still matches its header.

    Returns:
        The number of bytes actually read from ``src``.
    """
    if buf is None:
        buf = new_block()
    view = memoryview(buf)
    remaining = size
    copied = 0
    eof = False
    while remaining > 0:
        want = min(remaining, RECORD_SIZE)
        got = 0
        while not eof and got < want:
            n = src.readinto(view[got:want])
            if not n:
                eof = True
                break
            got += n
        view[got:] = bytes(RECORD_SIZE - got)
        out.write_block(buf)
        copied += got
        remaining -= want
    return copied


def read_content(inp: BlockStream, dst: BinaryIO, size: int, buf: Optional[bytearray] = None) -> int:
    """Copy an entry's content out of the archive, dropping the record padding."""
    if buf is None:
        buf = new_block()
    view = memoryview(buf)
    remaining = size
    while remaining > 0:
        if not inp.read_into(buf):
            raise TruncatedArchiveError(
                f"archive ends inside entry content ({remaining} bytes missing)", offset=inp.tell()
            )
        take = min(remaining, RECORD_SIZE)
        dst.write(view[:take])
        remaining -= take
    return size
