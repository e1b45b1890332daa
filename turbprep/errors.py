"""
Exception hierarchy for the TurbPrep package.

Every error raised by the package derives from TurbPrepError and from the builtin
exception that best describes it, so callers catching ValueError or OSError keep working.
"""

from typing import Optional


class TurbPrepError(Exception):
    """Base class for all TurbPrep errors."""

    def __init__(self, message: str = "", line_number: Optional[int] = None):
        super().__init__(message)
        self.line_number = line_number


class FileAccessError(TurbPrepError, OSError):
    """A file cannot be opened, read or written."""


class TruncatedFileError(TurbPrepError, EOFError):
    """A file ended before the expected number of bytes was read."""


class BadFormatError(TurbPrepError, ValueError):
    """Syntactic or structural violation of an external format."""


class ConfigurationError(TurbPrepError, ValueError):
    """Base class for configuration file errors."""


class MissingRequiredError(ConfigurationError):
    """A required configuration key is absent."""


class UnknownKeyError(ConfigurationError):
    """A configuration key is not declared in the schema."""


class ValueTypeError(ConfigurationError, TypeError):
    """A value cannot be parsed as its declared type."""


class OutOfRangeError(TurbPrepError, ValueError):
    """A numeric input falls outside its valid domain."""


class EmptyTableError(TurbPrepError, ValueError):
    """A query was made against an empty performance table."""


class NotFoundError(TurbPrepError, LookupError):
    """No matching row, file or entry."""


class MarkerMissingError(NotFoundError):
    """A named marker is absent on an airfoil geometry."""


class NotLoadedError(TurbPrepError, RuntimeError):
    """A data dependent operation was called before the data was loaded."""


class AxisTooSmallError(TurbPrepError, ValueError):
    """An interpolation axis has fewer than 2 points."""


class DomainError(TurbPrepError, ValueError):
    """A numerical precondition is violated."""


def with_line_number(err: TurbPrepError, line_number: int, message: str) -> TurbPrepError:
    """
    Rebuild an error of the same class carrying the given line number.

    Errors that already carry a line number are returned unchanged so that nested
    parsers never wrap twice.
    """
    if err.line_number is not None:
        return err
    return type(err)(message, line_number=line_number)
