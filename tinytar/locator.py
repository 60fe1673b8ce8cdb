from __future__ import annotations

from .blocks import BlockStream, new_block
from .constants import RECORD_SIZE, TRAILER_BLOCKS
from .errors import CorruptArchiveError
from .header import decode_size, is_valid, is_zero_block


def find_append_offset(stream: BlockStream) -> int:
    """Walk an archive from offset 0 and return where new entries may be written.

    Headers carry no pointer to the next entry, so every entry is visited:
    validate the header, skip its padded content, repeat. The walk stops at

    - end of input: new entries go at the current end;
    - the first pair of zero blocks: new entries overwrite that trailer, and any
      bytes after it are stale;
    - a single zero block at end of input: treated as a short trailer.

    Raises:
        CorruptArchiveError: a block where a header is expected lacks the
            ustar magic. No offset is produced.
    """
    stream.seek(0)
    block = new_block()
    peek = new_block()
    while True:
        offset = stream.tell()
        if not stream.read_into(block):
            return offset
        if is_zero_block(block):
            if not stream.read_into(peek):
                # Half a trailer at EOF is accepted, not rejected as corrupt
                return offset
            if is_zero_block(peek):
                return offset
            # Lone zero block: step back and judge it as a header candidate
            stream.rewind()
        if not is_valid(block):
            raise CorruptArchiveError(
                f"Invalid TAR format: missing ustar magic at offset {offset}.", offset=offset
            )
        stream.skip(decode_size(block))


def logical_end(stream: BlockStream) -> int:
    """Offset just past the trailer (or the append offset when no trailer exists)."""
    offset = find_append_offset(stream)
    stream.seek(offset)
    n = 0
    while n < TRAILER_BLOCKS and stream.read_block() is not None:
        n += 1
    return offset + n * RECORD_SIZE
