"""Lexical analysis for the Jack language."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional

from .errors import LexError, SourceLocation, SourceSpan
from .token import KEYWORDS, MAX_INT, SYMBOLS, Token, TokenType

_DIGITS = frozenset("0123456789")
_LETTERS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_")
_MAX_DIGITS = len(str(MAX_INT))


#runs too long to be in range are capped just above MAX_INT
def _int_value(lexeme: str) -> int:
    digits = lexeme.lstrip("0")
    if len(digits) > _MAX_DIGITS:
        return MAX_INT + 1
    return int(digits or "0")


#produces tokens on demand so only the current file position is held
@dataclass(slots=True)
class Lexer:
    source: str
    _length: int = field(init=False)
    _index: int = field(init=False, default=0)
    _line: int = field(init=False, default=1)
    _column: int = field(init=False, default=1)

    def __post_init__(self) -> None:
        self._length = len(self.source)
        self._index = 0
        self._line = 1
        self._column = 1

    def tokens(self) -> Iterator[Token]:
        while True:
            self._skip_trivia()
            if self._is_at_end():
                break

            start_loc = self._current_location()
            char = self._advance()

            if char in _LETTERS:
                yield self._word(start_loc)
            elif char in _DIGITS:
                yield self._number(start_loc)
            elif char == '"':
                yield self._string(start_loc)
            elif char in SYMBOLS:
                yield self._symbol(start_loc, char)
            else:
                span = SourceSpan(start=start_loc, end=self._current_location())
                raise LexError(f"unexpected character {char!r}", span)

        eof_loc = self._current_location()
        yield Token(
            type=TokenType.EOF,
            lexeme="",
            span=SourceSpan(start=eof_loc, end=eof_loc),
        )

    # Internal helpers -------------------------------------------------

    def _is_at_end(self) -> bool:
        return self._index >= self._length

    def _current_location(self) -> SourceLocation:
        return SourceLocation(line=self._line, column=self._column)

    def _advance(self) -> str:
        char = self.source[self._index]
        self._index += 1
        if char == "\n":
            self._line += 1
            self._column = 1
        else:
            self._column += 1
        return char

    def _peek(self) -> str:
        if self._is_at_end():
            return "\0"
        return self.source[self._index]

    def _peek_next(self) -> str:
        if self._index + 1 >= self._length:
            return "\0"
        return self.source[self._index + 1]

    #whitespace and both comment forms are skipped in one loop
    def _skip_trivia(self) -> None:
        while not self._is_at_end():
            char = self._peek()
            if char in " \r\t\n\f\v":
                self._advance()
            elif char == "/" and self._peek_next() == "/":
                self._line_comment()
            elif char == "/" and self._peek_next() == "*":
                self._block_comment()
            else:
                break

    def _line_comment(self) -> None:
        while not self._is_at_end() and self._peek() != "\n":
            self._advance()

    #an unclosed block comment runs to the end of input without error
    def _block_comment(self) -> None:
        self._advance()
        self._advance()
        while not self._is_at_end():
            if self._peek() == "*" and self._peek_next() == "/":
                self._advance()
                self._advance()
                return
            self._advance()

    def _symbol(self, start: SourceLocation, char: str) -> Token:
        end = self._current_location()
        return Token(TokenType.SYMBOL, char, SourceSpan(start=start, end=end))

    def _word(self, start: SourceLocation) -> Token:
        start_index = self._index - 1
        while self._peek() in _LETTERS or self._peek() in _DIGITS:
            self._advance()
        lexeme = self.source[start_index:self._index]
        token_type = TokenType.KEYWORD if lexeme in KEYWORDS else TokenType.IDENTIFIER
        end = self._current_location()
        return Token(token_type, lexeme, SourceSpan(start=start, end=end))

    def _number(self, start: SourceLocation) -> Token:
        start_index = self._index - 1
        while self._peek() in _DIGITS:
            self._advance()
        if self._peek() in _LETTERS:
            while self._peek() in _LETTERS or self._peek() in _DIGITS:
                self._advance()
            span = SourceSpan(start=start, end=self._current_location())
            lexeme = self.source[start_index:self._index]
            raise LexError(f"malformed token {lexeme!r}", span)
        lexeme = self.source[start_index:self._index]
        end = self._current_location()
        return Token(TokenType.INT_CONST, lexeme, SourceSpan(start=start, end=end), literal=_int_value(lexeme))

    #no escape mechanism: the next double quote always closes the string
    def _string(self, start: SourceLocation) -> Token:
        start_index = self._index
        while self._peek() != '"':
            if self._is_at_end() or self._peek() == "\n":
                span = SourceSpan(start=start, end=self._current_location())
                raise LexError("unterminated string constant", span)
            self._advance()
        lexeme = self.source[start_index:self._index]
        self._advance()  # closing quote
        end = self._current_location()
        return Token(TokenType.STRING_CONST, lexeme, SourceSpan(start=start, end=end))


#cursor over the lazy token stream: the current token plus one lookahead
class Scanner:
    def __init__(self, tokens: Iterator[Token]) -> None:
        self._tokens = tokens
        self._current: Optional[Token] = None
        self._next: Optional[Token] = next(self._tokens, None)

    @classmethod
    def from_source(cls, source: str) -> Scanner:
        return cls(Lexer(source).tokens())

    @property
    def current(self) -> Token:
        if self._current is None:
            raise AssertionError("advance() must be called before reading a token")
        return self._current

    def has_more_tokens(self) -> bool:
        return self._next is not None and self._next.type is not TokenType.EOF

    #EOF stays current once reached
    def advance(self) -> Token:
        if self._next is not None:
            self._current = self._next
            self._next = next(self._tokens, None)
        return self.current

    # Typed accessors ---------------------------------------------------

    def token_type(self) -> TokenType:
        return self.current.type

    def keyword(self) -> str:
        return self._expect_type(TokenType.KEYWORD).lexeme

    def symbol(self) -> str:
        return self._expect_type(TokenType.SYMBOL).lexeme

    def identifier(self) -> str:
        return self._expect_type(TokenType.IDENTIFIER).lexeme

    def int_val(self) -> int:
        return self._expect_type(TokenType.INT_CONST).literal

    def string_val(self) -> str:
        return self._expect_type(TokenType.STRING_CONST).lexeme

    def _expect_type(self, token_type: TokenType) -> Token:
        token = self.current
        if token.type is not token_type:
            raise AssertionError(f"current token is {token.describe()}, not {token_type.name}")
        return token


__all__ = ["Lexer", "Scanner"]
