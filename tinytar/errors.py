from typing import Optional


class TinyTarError(Exception):
    """Base class for tinytar-specific errors."""


# Archive structure
class CorruptArchiveError(TinyTarError):
    def __init__(self, message: str, offset: Optional[int] = None):
        super().__init__(message)
        self.offset = offset


class TruncatedArchiveError(CorruptArchiveError):
    pass


# Inputs and outputs
class NotRegularFileError(TinyTarError):
    pass


class FieldOverflowError(TinyTarError):
    pass


class UnsafeEntryNameError(TinyTarError):
    pass
