"""Token definitions for the Jack language."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Final, Optional

from .errors import SourceSpan


#enumerates every lexical category produced by the scanner
class TokenType(Enum):
    KEYWORD = auto()
    SYMBOL = auto()
    INT_CONST = auto()
    STRING_CONST = auto()
    IDENTIFIER = auto()

    EOF = auto()


KEYWORDS: Final[frozenset[str]] = frozenset(
    {
        "class",
        "constructor",
        "function",
        "method",
        "field",
        "static",
        "var",
        "int",
        "char",
        "boolean",
        "void",
        "true",
        "false",
        "null",
        "this",
        "let",
        "do",
        "if",
        "else",
        "while",
        "return",
    }
)

#every symbol is exactly one character long
SYMBOLS: Final[frozenset[str]] = frozenset("{}()[].,;+-*/&|<>=~")

#largest value an integer constant may take
MAX_INT: Final[int] = 32767


#encapsulates the lexeme string, token kind, literal value, and span
@dataclass(slots=True)
class Token:
    type: TokenType
    lexeme: str
    span: SourceSpan
    literal: Optional[int] = None

    #integer tokens always carry their value; no other kind does
    def __post_init__(self) -> None:
        if (self.type is TokenType.INT_CONST) != (self.literal is not None):
            raise ValueError(f"literal value is only set on integer constants, got {self.type.name}")

    def describe(self) -> str:
        if self.type is TokenType.EOF:
            return "end of input"
        if self.type is TokenType.STRING_CONST:
            return f'string "{self.lexeme}"'
        return f"{self.type.name.lower()} {self.lexeme!r}"

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"Token({self.type}, {self.lexeme!r}, {self.span})"
