"""
tinytar: a tiny USTAR archiver for flat collections of regular files.

Features:

- Byte-exact USTAR headers (GNU "ustar  " magic) with computed checksums.
- Content streamed in 512-byte records; the final record is zero-padded.
- Archives end with exactly two zero records instead of a 10 KiB multiple.
- Append walks the existing archive and overwrites its trailer in place;
  an archive that cannot be parsed is never modified.
- Listing, extraction, checksum verification and info via the CLI.

Out of scope: directories, links and special files, compression, multi-volume
archives and long names (names are truncated to 100 bytes).
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "header",
    "blocks",
    "content",
    "locator",
    "writer",
    "reader",
]

# Programmatic API: tinytar.writer.TarWriter / tinytar.reader.TarReader, plus
# the CLI functions in tinytar.cli (cmd_create/cmd_append/cmd_list/cmd_extract).
