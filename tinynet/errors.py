"""Exceptions for failed system calls and resolver lookups."""

from __future__ import annotations

import os
from typing import Optional, TypeVar

T = TypeVar("T")


class TaggedError(OSError):
    """An error code with a description of what was being attempted."""

    def __init__(self, attempt: str, error_code: int, message: str) -> None:
        super().__init__(error_code, message)
        self.attempt = attempt
        self.error_code = error_code
        self.attempt_and_error = f"{attempt}: {message}"

    def __str__(self) -> str:
        return self.attempt_and_error


class UnixError(TaggedError):
    """A failed operating-system call, described by its errno value."""

    def __init__(self, attempt: str, errno_value: int) -> None:
        super().__init__(attempt, errno_value, os.strerror(errno_value))


def check_system_call(attempt: str, return_value: int) -> int:
    """Return ``return_value`` if it is non-negative.

    A negative value is taken as a negated errno and raised as a UnixError.
    """
    if return_value >= 0:
        return return_value
    raise UnixError(attempt, -return_value)


def notnull(context: str, value: Optional[T]) -> T:
    """Return ``value``, or raise ValueError if it is None."""
    if value is None:
        raise ValueError(f"{context}: returned null pointer")
    return value