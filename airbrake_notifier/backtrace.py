"""Conversion of Python tracebacks into normalized notice frames."""

from __future__ import annotations

import traceback
from dataclasses import dataclass
from types import FrameType
from typing import Iterable, Iterator

PROJECT_ROOT = "[PROJECT_ROOT]"
INTERNAL = "[internal]"


@dataclass
class StackFrame:
    """One normalized backtrace line."""

    file: str
    line: int
    function: str

    def to_dict(self) -> dict[str, object]:
        return {"file": self.file, "line": self.line, "function": self.function}


def filter_root_directory(filename: str, root_directory: str | None) -> str:
    """Replace ``root_directory`` in ``filename`` with ``[PROJECT_ROOT]``."""
    if not filename or filename.startswith("<"):
        return INTERNAL
    if root_directory:
        return filename.replace(root_directory, PROJECT_ROOT)
    return filename


def _function_name(frame: FrameType) -> str:
    name = frame.f_code.co_name
    if name.startswith("<"):
        # <module>, <lambda>, <listcomp>
        return name
    owner = frame.f_locals.get("self")
    if owner is not None:
        return f"{type(owner).__name__}::{name}"
    owner = frame.f_locals.get("cls")
    if isinstance(owner, type):
        return f"{owner.__name__}::{name}"
    return name


def _frames(frames: Iterable[tuple[FrameType, int]], root_directory: str | None) -> Iterator[StackFrame]:
    for frame, lineno in frames:
        yield StackFrame(
            file=filter_root_directory(frame.f_code.co_filename, root_directory),
            line=lineno or 0,
            function=_function_name(frame),
        )


def normalize(exception: BaseException, root_directory: str | None = None) -> list[StackFrame]:
    """Build the backtrace of ``exception``, innermost frame first.

    Exceptions that know their own location (``SyntaxError``,
    ``ReportedError``) get that location as a leading frame with an empty
    function name. Recursion is preserved as repeated frames.
    """
    backtrace: list[StackFrame] = []

    filename = getattr(exception, "filename", None)
    lineno = getattr(exception, "lineno", None)
    if isinstance(filename, str) and filename and isinstance(lineno, int) and lineno:
        backtrace.append(
            StackFrame(
                file=filter_root_directory(filename, root_directory),
                line=lineno,
                function="",
            )
        )

    walked = list(traceback.walk_tb(exception.__traceback__))
    walked.reverse()
    backtrace.extend(_frames(walked, root_directory))
    return backtrace


def from_stack(frame: FrameType | None, root_directory: str | None = None) -> list[StackFrame]:
    """Build a backtrace from a live frame and its callers, innermost first."""
    return list(_frames(traceback.walk_stack(frame), root_directory))
