"""Single-pass compiler from Jack tokens straight to VM instructions."""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Dict, Tuple, Union

from .errors import ParseError, SymbolError
from .lexer import Scanner
from .symbol_table import Kind, Symbol, SymbolTable
from .token import MAX_INT, Token, TokenType
from .vm_writer import Command, Segment, VMWriter

logger = logging.getLogger(__name__)

_STATEMENT_KEYWORDS = ("let", "if", "while", "do", "return")
_SUBROUTINE_KEYWORDS = ("constructor", "function", "method")
_PRIMITIVE_TYPES = ("int", "char", "boolean")
_KEYWORD_CONSTANTS = ("true", "false", "null", "this")

#the target machine has no multiply/divide, so those become runtime calls
_BINARY_OPS: Dict[str, Union[Command, Tuple[str, int]]] = {
    "+": Command.ADD,
    "-": Command.SUB,
    "*": ("Math.multiply", 2),
    "/": ("Math.divide", 2),
    "&": Command.AND,
    "|": Command.OR,
    "<": Command.LT,
    ">": Command.GT,
    "=": Command.EQ,
}


#per-file state: never shared between compilations
@dataclass(slots=True)
class CompilationContext:
    class_name: str = ""
    subroutine_name: str = ""
    label_counter: int = 0

    def qualify(self, name: str) -> str:
        return f"{self.class_name}.{name}"

    #labels are never reused, even when a construct leaves one unreferenced
    def new_label(self) -> str:
        label = f"{self.class_name}_{self.label_counter}"
        self.label_counter += 1
        return label


class Compiler:
    """Recursive-descent parser that emits code as each production completes.

    Every production starts with the current token on the first token of its
    construct and returns with the current token on the first token after it.
    Any mismatch raises; nothing is recovered within a file.
    """

    def __init__(self, scanner: Scanner, writer: VMWriter) -> None:
        self._scanner = scanner
        self._writer = writer
        self.symbols = SymbolTable()
        self.context = CompilationContext()
        self._scanner.advance()

    @classmethod
    def from_source(cls, source: str, writer: VMWriter) -> Compiler:
        return cls(Scanner.from_source(source), writer)

    #a file holds exactly one class and nothing after it
    def compile(self) -> None:
        self.compile_class()
        if not self._check(TokenType.EOF):
            raise self._error("expected end of input after class")

    # Class level -------------------------------------------------------------

    def compile_class(self) -> None:
        self._expect_keyword("class", "expected 'class'")
        name = self._consume(TokenType.IDENTIFIER, "expected class name")
        self.context.class_name = name.lexeme
        self._expect_symbol("{", "expected '{' after class name")

        while self._check_keyword("static", "field"):
            self._class_var_dec()
        while self._check_keyword(*_SUBROUTINE_KEYWORDS):
            self._subroutine_dec()

        self._expect_symbol("}", "expected subroutine declaration or '}'")

    #('static' | 'field') type name (',' name)* ';'
    def _class_var_dec(self) -> None:
        kind = Kind.STATIC if self._advance().lexeme == "static" else Kind.FIELD
        type_name = self._type()
        self._var_names(type_name, kind)

    #'var' type name (',' name)* ';'
    def _var_dec(self) -> None:
        self._advance()
        type_name = self._type()
        self._var_names(type_name, Kind.VAR)

    def _var_names(self, type_name: str, kind: Kind) -> None:
        while True:
            name = self._consume(TokenType.IDENTIFIER, "expected variable name")
            self._define(name, type_name, kind)
            if not self._match_symbol(","):
                break
        self._expect_symbol(";", "expected ';' after variable declaration")

    def _type(self, allow_void: bool = False) -> str:
        token = self._peek()
        if token.type is TokenType.IDENTIFIER:
            return self._advance().lexeme
        if token.type is TokenType.KEYWORD:
            if token.lexeme in _PRIMITIVE_TYPES or (allow_void and token.lexeme == "void"):
                return self._advance().lexeme
        raise self._error("expected return type" if allow_void else "expected type")

    # Subroutines -------------------------------------------------------------

    def _subroutine_dec(self) -> None:
        self.symbols.reset_scope()
        subroutine_kind = self._advance().lexeme
        self._type(allow_void=True)
        name = self._consume(TokenType.IDENTIFIER, "expected subroutine name")
        self.context.subroutine_name = self.context.qualify(name.lexeme)
        logger.debug("compiling %s %s", subroutine_kind, self.context.subroutine_name)

        #argument 0 of a method is the receiver
        if subroutine_kind == "method":
            self.symbols.define("this", self.context.class_name, Kind.ARG)

        self._expect_symbol("(", "expected '(' after subroutine name")
        self._parameter_list()
        self._expect_symbol(")", "expected ')' after parameters")
        self._expect_symbol("{", "expected '{' to start subroutine body")

        while self._check_keyword("var"):
            self._var_dec()

        self._writer.write_function(self.context.subroutine_name, self.symbols.var_count(Kind.VAR))
        if subroutine_kind == "constructor":
            self._writer.write_push(Segment.CONST, self.symbols.var_count(Kind.FIELD))
            self._writer.write_call("Memory.alloc", 1)
            self._writer.write_pop(Segment.POINTER, 0)
        elif subroutine_kind == "method":
            self._writer.write_push(Segment.ARG, 0)
            self._writer.write_pop(Segment.POINTER, 0)

        self._statements()
        self._expect_symbol("}", "expected statement or '}'")

    def _parameter_list(self) -> None:
        if self._check_symbol(")"):
            return
        while True:
            type_name = self._type()
            name = self._consume(TokenType.IDENTIFIER, "expected parameter name")
            self._define(name, type_name, Kind.ARG)
            if not self._match_symbol(","):
                break

    # Statements ----------------------------------------------------------------

    def _statements(self) -> None:
        while self._check_keyword(*_STATEMENT_KEYWORDS):
            match self._peek().lexeme:
                case "let":
                    self._let_statement()
                case "if":
                    self._if_statement()
                case "while":
                    self._while_statement()
                case "do":
                    self._do_statement()
                case "return":
                    self._return_statement()

    #array stores park the value in temp 0 while `that` is rebound
    def _let_statement(self) -> None:
        self._advance()
        name = self._consume(TokenType.IDENTIFIER, "expected variable name after 'let'")
        target = self._variable(name)

        if self._match_symbol("["):
            self._expression()
            self._expect_symbol("]", "expected ']' after index")
            self._push_symbol(target)
            self._writer.write_arithmetic(Command.ADD)
            self._expect_symbol("=", "expected '=' in let statement")
            self._expression()
            self._expect_symbol(";", "expected ';' after let statement")
            self._writer.write_pop(Segment.TEMP, 0)
            self._writer.write_pop(Segment.POINTER, 1)
            self._writer.write_push(Segment.TEMP, 0)
            self._writer.write_pop(Segment.THAT, 0)
            return

        self._expect_symbol("=", "expected '=' in let statement")
        self._expression()
        self._expect_symbol(";", "expected ';' after let statement")
        self._writer.write_pop(Segment.for_kind(target.kind), target.index)

    def _if_statement(self) -> None:
        self._advance()
        end_label = self.context.new_label()
        else_label = self.context.new_label()

        self._condition("if")
        self._writer.write_arithmetic(Command.NOT)
        self._writer.write_if(else_label)
        self._block()
        self._writer.write_goto(end_label)
        self._writer.write_label(else_label)

        if self._match_keyword("else"):
            self._block()

        self._writer.write_label(end_label)

    def _while_statement(self) -> None:
        self._advance()
        start_label = self.context.new_label()
        end_label = self.context.new_label()

        self._writer.write_label(start_label)
        self._condition("while")
        self._writer.write_arithmetic(Command.NOT)
        self._writer.write_if(end_label)
        self._block()
        self._writer.write_goto(start_label)
        self._writer.write_label(end_label)

    #every call leaves one value on the stack, even a void one
    def _do_statement(self) -> None:
        self._advance()
        name = self._consume(TokenType.IDENTIFIER, "expected subroutine call after 'do'")
        self._subroutine_call(name)
        self._writer.write_pop(Segment.TEMP, 0)
        self._expect_symbol(";", "expected ';' after do statement")

    def _return_statement(self) -> None:
        self._advance()
        if self._check_symbol(";"):
            self._writer.write_push(Segment.CONST, 0)
        else:
            self._expression()
        self._expect_symbol(";", "expected ';' after return")
        self._writer.write_return()

    def _condition(self, keyword: str) -> None:
        self._expect_symbol("(", f"expected '(' after '{keyword}'")
        self._expression()
        self._expect_symbol(")", f"expected ')' after {keyword} condition")

    def _block(self) -> None:
        self._expect_symbol("{", "expected '{' to start block")
        self._statements()
        self._expect_symbol("}", "expected statement or '}'")

    # Expressions ---------------------------------------------------------------

    #no precedence levels: operators apply strictly left to right
    def _expression(self) -> None:
        self._term()
        while self._check(TokenType.SYMBOL) and self._peek().lexeme in _BINARY_OPS:
            operator = self._advance().lexeme
            self._term()
            action = _BINARY_OPS[operator]
            if isinstance(action, Command):
                self._writer.write_arithmetic(action)
            else:
                self._writer.write_call(*action)

    def _term(self) -> None:
        token = self._peek()
        match token.type:
            case TokenType.INT_CONST:
                if token.literal > MAX_INT:
                    shown = token.lexeme if len(token.lexeme) <= 12 else token.lexeme[:12] + "..."
                    raise ParseError(f"integer constant {shown} out of range 0..{MAX_INT}", token.span)
                self._advance()
                self._writer.write_push(Segment.CONST, token.literal)
            case TokenType.STRING_CONST:
                self._advance()
                self._string_constant(token.lexeme)
            case TokenType.KEYWORD if token.lexeme in _KEYWORD_CONSTANTS:
                self._advance()
                self._keyword_constant(token.lexeme)
            case TokenType.SYMBOL if token.lexeme == "(":
                self._advance()
                self._expression()
                self._expect_symbol(")", "expected ')' after expression")
            case TokenType.SYMBOL if token.lexeme in ("-", "~"):
                self._advance()
                self._term()
                self._writer.write_arithmetic(Command.NEG if token.lexeme == "-" else Command.NOT)
            case TokenType.IDENTIFIER:
                self._advance()
                self._identifier_term(token)
            case _:
                raise self._error("expected expression")

    def _string_constant(self, value: str) -> None:
        self._writer.write_push(Segment.CONST, len(value))
        self._writer.write_call("String.new", 1)
        for char in value:
            self._writer.write_push(Segment.CONST, ord(char))
            self._writer.write_call("String.appendChar", 2)

    def _keyword_constant(self, word: str) -> None:
        if word == "true":
            self._writer.write_push(Segment.CONST, 1)
            self._writer.write_arithmetic(Command.NEG)
        elif word == "this":
            self._writer.write_push(Segment.POINTER, 0)
        else:
            self._writer.write_push(Segment.CONST, 0)

    #name, name[expr], name(args) or name.member(args)
    def _identifier_term(self, name: Token) -> None:
        if self._match_symbol("["):
            self._expression()
            self._expect_symbol("]", "expected ']' after index")
            self._push_symbol(self._variable(name))
            self._writer.write_arithmetic(Command.ADD)
            self._writer.write_pop(Segment.POINTER, 1)
            self._writer.write_push(Segment.THAT, 0)
        elif self._check_symbol("(", "."):
            self._subroutine_call(name)
        else:
            self._push_symbol(self._variable(name))

    def _subroutine_call(self, name: Token) -> None:
        if self._match_symbol("."):
            member = self._consume(TokenType.IDENTIFIER, "expected subroutine name after '.'")
            receiver = self.symbols.lookup(name.lexeme)
            if receiver is not None:
                self._push_symbol(receiver)
                function = f"{receiver.type}.{member.lexeme}"
                n_args = 1
            else:
                function = f"{name.lexeme}.{member.lexeme}"
                n_args = 0
        elif self._check_symbol("("):
            self._writer.write_push(Segment.POINTER, 0)
            function = self.context.qualify(name.lexeme)
            n_args = 1
        else:
            raise self._error("expected '(' or '.' in subroutine call")

        self._expect_symbol("(", "expected '(' before arguments")
        n_args += self._expression_list()
        self._expect_symbol(")", "expected ')' after arguments")
        self._writer.write_call(function, n_args)

    def _expression_list(self) -> int:
        if self._check_symbol(")"):
            return 0
        self._expression()
        count = 1
        while self._match_symbol(","):
            self._expression()
            count += 1
        return count

    # Symbols -------------------------------------------------------------------

    #re-raises table failures with the position of the declaring token
    def _define(self, name: Token, type_name: str, kind: Kind) -> None:
        try:
            self.symbols.define(name.lexeme, type_name, kind)
        except SymbolError as exc:
            raise SymbolError(exc.message, name.span) from exc

    def _variable(self, name: Token) -> Symbol:
        symbol = self.symbols.lookup(name.lexeme)
        if symbol is None:
            raise SymbolError(f"undefined variable {name.lexeme!r}", name.span)
        return symbol

    def _push_symbol(self, symbol: Symbol) -> None:
        self._writer.write_push(Segment.for_kind(symbol.kind), symbol.index)

    # Token utilities -----------------------------------------------------------

    def _peek(self) -> Token:
        return self._scanner.current

    def _advance(self) -> Token:
        token = self._scanner.current
        self._scanner.advance()
        return token

    def _check(self, token_type: TokenType, *lexemes: str) -> bool:
        token = self._peek()
        if token.type is not token_type:
            return False
        return not lexemes or token.lexeme in lexemes

    def _check_keyword(self, *words: str) -> bool:
        return self._check(TokenType.KEYWORD, *words)

    def _check_symbol(self, *symbols: str) -> bool:
        return self._check(TokenType.SYMBOL, *symbols)

    def _match_keyword(self, word: str) -> bool:
        if self._check_keyword(word):
            self._advance()
            return True
        return False

    def _match_symbol(self, symbol: str) -> bool:
        if self._check_symbol(symbol):
            self._advance()
            return True
        return False

    def _consume(self, token_type: TokenType, message: str) -> Token:
        if self._check(token_type):
            return self._advance()
        raise self._error(message)

    def _expect_keyword(self, word: str, message: str) -> Token:
        if self._check_keyword(word):
            return self._advance()
        raise self._error(message)

    def _expect_symbol(self, symbol: str, message: str) -> Token:
        if self._check_symbol(symbol):
            return self._advance()
        raise self._error(message)

    def _error(self, message: str) -> ParseError:
        token = self._peek()
        return ParseError(f"{message}, got {token.describe()}", token.span)


#compiles one file's source text and returns its instruction text
def compile_source(source: str) -> str:
    sink = io.StringIO()
    Compiler.from_source(source, VMWriter(sink)).compile()
    return sink.getvalue()


__all__ = ["CompilationContext", "Compiler", "compile_source"]
