"""Exception hierarchy shared by ingestion, hydraulics, encoders and batch runs.

Every error derives from :class:`FdvError` and from the closest builtin, so
callers catching ``ValueError`` or ``FileNotFoundError`` keep working.
"""

from __future__ import annotations


class FdvError(Exception):
    """Base class for all fdvproc failures."""


class UnsupportedFormat(FdvError, ValueError):
    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(f"Unsupported file format: {extension}")


class InputFileNotFound(FdvError, FileNotFoundError):
    def __init__(self, path):
        self.path = str(path)
        super().__init__(f"File not found: {self.path}")


class EmptyData(FdvError, ValueError):
    def __init__(self, path=None):
        self.path = None if path is None else str(path)
        msg = "No data rows found"
        super().__init__(f"{msg}: {self.path}" if self.path else msg)


class SheetNotFound(FdvError, ValueError):
    def __init__(self, path=None):
        super().__init__(f"No sheets found in Excel file: {path}")


class TimestampColumnNotFound(FdvError, KeyError):
    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable
        return "Timestamp column not found"


class TimestampFormatNotIdentified(FdvError, ValueError):
    def __init__(self, column: str | None = None):
        self.column = column
        super().__init__("Unable to identify timestamp format")


class ParseError(FdvError, ValueError):
    pass


class InvalidParameter(FdvError, ValueError):
    pass


class CalculationError(FdvError, ValueError):
    pass


class MathDomainError(FdvError, ArithmeticError):
    pass


class ConvergenceError(FdvError, ArithmeticError):
    pass


class BatchError(FdvError, RuntimeError):
    """A batch job failed; ``job`` is the descriptor, ``__cause__`` the reason."""

    def __init__(self, job, reason: BaseException):
        self.job = job
        self.reason = reason
        path = getattr(job, "filepath", job)
        super().__init__(f"Batch job failed for {path}: {reason}")


__all__ = [
    "FdvError",
    "UnsupportedFormat",
    "InputFileNotFound",
    "EmptyData",
    "SheetNotFound",
    "TimestampColumnNotFound",
    "TimestampFormatNotIdentified",
    "ParseError",
    "InvalidParameter",
    "CalculationError",
    "MathDomainError",
    "ConvergenceError",
    "BatchError",
]
