"""
filecabinet/errors.py
Exception hierarchy shared by every layer of the file cabinet.

  FileCabinetError
    ValidationError   record fails a domain rule, nothing is persisted
    NotFound          id / criteria resolve to zero records
    AmbiguousMatch    criteria resolve to more than one record
    InvalidArgument   bad caller input (id < 1, malformed values)
      FormatError     malformed binary buffer (e.g. decimal not 16 bytes)
      DuplicateId     insert with an id that is already alive
    CorruptFile       backing file is not a whole number of slots
    ConfigError       unknown / malformed validation rule set
"""

from __future__ import annotations


class FileCabinetError(Exception):
    """Base class for all file cabinet errors."""


class ValidationError(FileCabinetError):
    """A record field failed a validation rule."""

    def __init__(self, reason: str, field: str | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.field = field


class NotFound(FileCabinetError, KeyError):
    """No alive record matches the given id or criteria."""

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0]) if self.args else ""


class AmbiguousMatch(FileCabinetError):
    """Criteria meant to pick one record matched several."""

    def __init__(self, message: str, ids: list[int] | None = None) -> None:
        super().__init__(message)
        self.ids = list(ids or [])


class InvalidArgument(FileCabinetError, ValueError):
    """Caller supplied an argument outside the accepted domain."""


class FormatError(InvalidArgument):
    """A binary buffer does not have the expected shape."""


class DuplicateId(InvalidArgument):
    """An explicit id collides with an alive record."""


class CorruptFile(FileCabinetError):
    """The backing file cannot be interpreted as a sequence of slots."""


class ConfigError(FileCabinetError):
    """Validation rules configuration is missing or malformed."""
