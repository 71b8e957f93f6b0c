"""Common error and source span utilities."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


#describes an exact line/column position captured during scanning
@dataclass(frozen=True, slots=True)
class SourceLocation:
    """A 1-based line/column location inside a source file."""

    line: int
    column: int

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.line}:{self.column}"


#stores the start/end positions of a token for diagnostics
@dataclass(frozen=True, slots=True)
class SourceSpan:
    """Represents a half-open source range [start, end)."""

    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.start}-{self.end}"


#base exception for every failure that aborts a file's compilation
class JackError(Exception):
    """Base class for compiler errors."""

    def __init__(self, message: str, span: Optional[SourceSpan] = None) -> None:
        super().__init__(message)
        self.message = message
        self.span = span

    def describe(self) -> str:
        if self.span is None:
            return self.message
        return f"{self.span.start}: {self.message}"


#scanner raises this for characters or tokens outside the language alphabet
class LexError(JackError):
    """Raised when the scanner encounters an invalid character sequence."""


#compiler raises this when the current token does not fit the grammar
class ParseError(JackError):
    """Raised when the compiler encounters an invalid construct."""


#symbol table failures: duplicates, invalid names, undefined lookups
class SymbolError(JackError):
    """Raised for declaration and name-resolution failures."""
