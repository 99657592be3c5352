"""Errors that record where in the code they were created."""

from __future__ import annotations

import os
import sys
from typing import Any


class LazyError(Exception):
    """An error carrying the location of its creation and an optional cause."""

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        location: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.location = location
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.location is None:
            return self.message
        return f"<{self.location}> {self.message}"


def _caller_location() -> str | None:
    """Describe the frame that called the public constructor function."""
    try:
        frame = sys._getframe(2)
    except ValueError:
        return None
    code = frame.f_code
    filename = os.path.basename(code.co_filename)
    location = f"{filename}:{frame.f_lineno}"
    module = os.path.splitext(filename)[0]
    if code.co_name:
        location += f" {module}.{code.co_name}" if module else f" {code.co_name}"
    return location


def new(message: str) -> LazyError:
    """Create an error with the given message and the caller's location."""
    return LazyError(message, location=_caller_location())


def wrap(err: BaseException) -> LazyError:
    """Wrap an existing error, adding the caller's location."""
    if err is None:
        raise TypeError("err is None")
    return LazyError(str(err), cause=err, location=_caller_location())


def errorf(template: str, *args: Any) -> LazyError:
    """Format a message with str.format; the first error among args becomes the cause."""
    cause = next((a for a in args if isinstance(a, BaseException)), None)
    return LazyError(template.format(*args), cause=cause, location=_caller_location())