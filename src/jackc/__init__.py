"""jackc: a single-pass compiler from Jack classes to stack-VM code."""

#makes package exports explicit for downstream imports
from . import compiler, errors, lexer, symbol_table, token, vm_writer

__all__ = [
    "compiler",
    "errors",
    "lexer",
    "symbol_table",
    "token",
    "vm_writer",
]
