# Record geometry
RECORD_SIZE = 512
TRAILER_BLOCKS = 2
ZERO_BLOCK = b"\x00" * RECORD_SIZE

# Header field offsets and widths (USTAR)
NAME_SIZE = 100
MODE_SIZE = 8
UID_SIZE = 8
GID_SIZE = 8
SIZE_OFFSET, SIZE_SIZE = 124, 12
MTIME_SIZE = 12
CHKSUM_OFFSET, CHKSUM_SIZE = 148, 8
MAGIC_OFFSET = 257

# Magic
USTAR_MAGIC = b"ustar  \x00"  # GNU spelling: "ustar" + two spaces + NUL
USTAR_MAGIC_PREFIX = b"ustar"  # only these 5 bytes are validated

REGTYPE = b"0"

# Header defaults written for every entry
DEFAULT_MODE = 0o644
DEFAULT_UID = 1000
DEFAULT_GID = 1000
DEFAULT_UNAME = "user"
DEFAULT_GNAME = "group"

# Timestamps at or before 1980-01-01 00:00:00 UTC are treated as missing
# by time sources that opt into replacement
T_19800101 = 315532800
