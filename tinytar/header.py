from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from typing import Union

from .constants import (
    RECORD_SIZE,
    NAME_SIZE,
    MODE_SIZE,
    UID_SIZE,
    GID_SIZE,
    SIZE_OFFSET,
    SIZE_SIZE,
    MTIME_SIZE,
    CHKSUM_OFFSET,
    CHKSUM_SIZE,
    MAGIC_OFFSET,
    USTAR_MAGIC,
    USTAR_MAGIC_PREFIX,
    REGTYPE,
    DEFAULT_MODE,
    DEFAULT_UID,
    DEFAULT_GID,
    DEFAULT_UNAME,
    DEFAULT_GNAME,
)
from .errors import FieldOverflowError


# USTAR header (512 bytes, all fields are byte strings)
#  name[100] mode[8] uid[8] gid[8] size[12] mtime[12] chksum[8] typeflag[1]
#  linkname[100] magic[8] uname[32] gname[32] devmajor[8] devminor[8]
#  prefix[155] pad[12]
_HEADER_STRUCT = struct.Struct("<100s8s8s8s12s12s8s1s100s8s32s32s8s8s155s12s")
assert _HEADER_STRUCT.size == RECORD_SIZE

_CHKSUM_BLANK = b" " * CHKSUM_SIZE


@dataclass
class TarHeader:
    name: str
    size: int
    mtime: int
    mode: int = DEFAULT_MODE
    uid: int = DEFAULT_UID
    gid: int = DEFAULT_GID
    typeflag: bytes = REGTYPE
    uname: str = DEFAULT_UNAME
    gname: str = DEFAULT_GNAME


def _octal(value: int, width: int, field: str) -> bytes:
    """Format ``value`` as zero-padded octal filling ``width - 1`` digits plus NUL."""
    digits = width - 1
    if value < 0:
        raise FieldOverflowError(f"{field} may not be negative: {value}")
    text = "%0*o" % (digits, value)
    if len(text) > digits:
        raise FieldOverflowError(f"{field} {value} does not fit in {digits} octal digits")
    return text.encode("ascii") + b"\x00"


def _parse_octal(field: bytes) -> int:
    # Permissive: bytes outside '0'..'7' contribute nothing and never raise.
    value = 0
    for b in field:
        if 0x30 <= b <= 0x37:
            value = (value << 3) + (b - 0x30)
    return value


def _nts(field: bytes) -> bytes:
    return field.split(b"\x00", 1)[0]


def display_name(raw: bytes) -> str:
    """Render a name field for output, replacing non-printable bytes with '?'."""
    raw = _nts(raw[:NAME_SIZE])
    return "".join(chr(b) if 0x20 <= b <= 0x7E else "?" for b in raw)


def encode_name(name: Union[str, bytes]) -> bytes:
    """Return the bytes stored in the name field (truncated to 100 bytes)."""
    raw = name if isinstance(name, bytes) else os.fsencode(name)
    return raw[:NAME_SIZE]


def header_checksum(block: bytes) -> int:
    """Unsigned byte sum of ``block`` with the checksum field counted as spaces."""
    if len(block) != RECORD_SIZE:
        raise ValueError("header block must be 512 bytes")
    return sum(block[:CHKSUM_OFFSET]) + sum(_CHKSUM_BLANK) + sum(block[CHKSUM_OFFSET + CHKSUM_SIZE:])


def checksum_matches(block: bytes) -> bool:
    stored = _parse_octal(block[CHKSUM_OFFSET:CHKSUM_OFFSET + CHKSUM_SIZE])
    return stored == header_checksum(block)


def encode_header(
    name: Union[str, bytes],
    size: int,
    mtime: int,
    *,
    mode: int = DEFAULT_MODE,
    uid: int = DEFAULT_UID,
    gid: int = DEFAULT_GID,
) -> bytes:
    """Build a regular-file header block.

    Names longer than the 100-byte field are truncated to their first 100 bytes.
    Numeric values that do not fit their octal field raise FieldOverflowError.
    """
    block = bytearray(
        _HEADER_STRUCT.pack(
            encode_name(name),
            _octal(mode, MODE_SIZE, "mode"),
            _octal(uid, UID_SIZE, "uid"),
            _octal(gid, GID_SIZE, "gid"),
            _octal(size, SIZE_SIZE, "size"),
            _octal(int(mtime), MTIME_SIZE, "mtime"),
            _CHKSUM_BLANK,
            REGTYPE,
            b"",
            USTAR_MAGIC,
            DEFAULT_UNAME.encode("ascii"),
            DEFAULT_GNAME.encode("ascii"),
            b"",
            b"",
            b"",
            b"",
        )
    )
    checksum = sum(block)
    # Six octal digits, then NUL, then space
    block[CHKSUM_OFFSET:CHKSUM_OFFSET + CHKSUM_SIZE] = b"%06o\x00 " % checksum
    return bytes(block)


def decode_size(block: bytes) -> int:
    return _parse_octal(block[SIZE_OFFSET:SIZE_OFFSET + SIZE_SIZE])


def decode_header(block: bytes) -> TarHeader:
    if len(block) != RECORD_SIZE:
        raise ValueError("header block must be 512 bytes")
    (name, mode, uid, gid, size, mtime, _chksum, typeflag,
     _linkname, _magic, uname, gname, _devmajor, _devminor, _prefix, _pad) = _HEADER_STRUCT.unpack(block)
    return TarHeader(
        name=display_name(name),
        size=_parse_octal(size),
        mtime=_parse_octal(mtime),
        mode=_parse_octal(mode),
        uid=_parse_octal(uid),
        gid=_parse_octal(gid),
        typeflag=typeflag,
        uname=_nts(uname).decode("ascii", "replace"),
        gname=_nts(gname).decode("ascii", "replace"),
    )


def is_valid(block: bytes) -> bool:
    # Magic only; checksums are not re-verified on read.
    return block[MAGIC_OFFSET:MAGIC_OFFSET + len(USTAR_MAGIC_PREFIX)] == USTAR_MAGIC_PREFIX


def is_zero_block(block: bytes) -> bool:
    return not any(block)
