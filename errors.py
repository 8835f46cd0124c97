"""Typed errors for statichuff.

Library code raises these; only the CLI turns them into exit codes.
Each class also derives from the builtin exception callers would expect
(``ValueError`` for bad containers, ``OverflowError`` for values the format
cannot represent, ``OSError`` for resource failures) so plain ``except``
clauses keep working.
"""

from __future__ import annotations

from dataclasses import dataclass

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_GENERIC = 10
EXIT_FORMAT = 11
EXIT_UNSUPPORTED_VERSION = 12
EXIT_IO = 13
EXIT_OVERFLOW = 14


@dataclass(frozen=True)
class ExitCodeInfo:
    code: int
    name: str
    description: str


EXIT_CODES: tuple[ExitCodeInfo, ...] = (
    ExitCodeInfo(EXIT_OK, "OK", "Success"),
    ExitCodeInfo(EXIT_USAGE, "USAGE", "Invalid command line arguments"),
    ExitCodeInfo(EXIT_GENERIC, "GENERIC", "Unexpected failure"),
    ExitCodeInfo(EXIT_FORMAT, "FORMAT", "Malformed or truncated container"),
    ExitCodeInfo(EXIT_UNSUPPORTED_VERSION, "UNSUPPORTED_VERSION", "Unsupported container version"),
    ExitCodeInfo(EXIT_IO, "IO", "Input or output file could not be opened, read or written"),
    ExitCodeInfo(EXIT_OVERFLOW, "OVERFLOW", "Value exceeds what the container format can represent"),
)

_EXIT_CODE_BY_CODE: dict[int, ExitCodeInfo] = {e.code: e for e in EXIT_CODES}


def exit_code_info(code: int) -> ExitCodeInfo | None:
    return _EXIT_CODE_BY_CODE.get(int(code))


class HuffmanError(Exception):
    """Base error for statichuff."""

    exit_code: int = EXIT_GENERIC


class FormatError(HuffmanError, ValueError):
    """The container is malformed, truncated or internally inconsistent."""

    exit_code = EXIT_FORMAT


class BadMagic(FormatError):
    pass


class UnsupportedVersion(FormatError):
    exit_code = EXIT_UNSUPPORTED_VERSION


class CodeOverflowError(HuffmanError, OverflowError):
    """A code length or count does not fit its field in the container."""

    exit_code = EXIT_OVERFLOW


class ContainerIOError(HuffmanError, OSError):
    exit_code = EXIT_IO
