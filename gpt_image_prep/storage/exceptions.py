"""Custom exceptions for image inspection and shrink operations.

This module defines a hierarchy of exceptions so callers can tell a failing
tool apart from tool output that changed shape, and both apart from numbers
that do not parse.

Exception Hierarchy:
    ImageError (base)
        ├── CommandFailedError
        ├── OutputFormatError
        │   ├── RowNotFoundError
        │   └── ColumnOutOfRangeError
        ├── MalformedNumberError
        │   └── MalformedRowError
        ├── NoPartitionsFoundError
        ├── ShrinkFailedError
        └── ImageValidationError

Usage:
    from gpt_image_prep.storage.exceptions import describe_operation

    with describe_operation("getting first sector offset from 'sgdisk -i'"):
        first_sector = locate(output, "First sector", 2)
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional, Sequence


class ImageError(Exception):
    """Base exception for all image operations.

    ``operation`` names what was being attempted when the error escaped; it is
    filled in by :func:`describe_operation` and prefixed to ``str(error)``.
    """

    def __init__(self, message: str):
        self.message = message
        self.operation: Optional[str] = None
        super().__init__(message)

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class CommandFailedError(ImageError):
    """External tool exited non-zero."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        output = self.stderr.strip() or self.stdout.strip() or "no output"
        super().__init__(
            f"Command failed with exit status {returncode} "
            f"({' '.join(self.command)}): {output}"
        )


class OutputFormatError(ImageError):
    """Tool output did not have the expected shape."""


class RowNotFoundError(OutputFormatError):
    """No line in the output carries the expected label."""

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"No row labelled '{label}' found in command output")


class ColumnOutOfRangeError(OutputFormatError):
    """The labelled row has fewer columns than requested."""

    def __init__(self, label: str, column: int, available: int, line: str = ""):
        self.label = label
        self.column = column
        self.available = available
        self.line = line
        super().__init__(
            f"Row '{label}' has {available} columns, column {column} requested"
            + (f": '{line}'" if line else "")
        )


class MalformedNumberError(ImageError):
    """A value expected to be numeric was not."""

    def __init__(self, value: str, what: str = "value", message: Optional[str] = None):
        self.value = value
        self.what = what
        super().__init__(
            message or f"Could not parse {what} '{value}' as an unsigned integer"
        )


class MalformedRowError(MalformedNumberError):
    """A partition row could not be parsed; carries the raw line verbatim."""

    def __init__(self, line: str, reason: str):
        self.line = line
        self.reason = reason
        super().__init__(
            line,
            "partition line",
            message=f"Malformed partition line '{line}': {reason}",
        )


class NoPartitionsFoundError(ImageError):
    """The partition listing contained no partition rows."""

    def __init__(self, image_path=None):
        self.image_path = image_path
        if image_path is not None:
            message = (
                f"No partition entries found in 'sgdisk -p' output for '{image_path}'"
            )
        else:
            message = "No partition entries found in partition listing"
        super().__init__(message)


class ShrinkFailedError(ImageError):
    """Both the flagged and the fallback resize attempts failed."""

    def __init__(
        self, image_path, new_size_bytes: int, cause: Optional[Exception] = None
    ):
        self.image_path = image_path
        self.new_size_bytes = new_size_bytes
        self.cause = cause
        message = f"Failed to shrink {image_path} to {new_size_bytes} bytes"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class ImageValidationError(ImageError):
    """Post-shrink validation found problems with the image."""

    def __init__(self, image_path, failures: Sequence[str]):
        self.image_path = image_path
        self.failures = list(failures)
        super().__init__(
            f"Validation failed for {image_path}: " + "; ".join(self.failures)
        )


@contextmanager
def describe_operation(operation: str) -> Iterator[None]:
    """Record ``operation`` on any ImageError escaping the block.

    The original exception object is re-raised. An operation recorded by an
    inner block is kept, since it is the more specific description.
    """
    try:
        yield
    except ImageError as error:
        if error.operation is None:
            error.operation = operation
        raise
