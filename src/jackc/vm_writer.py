"""Textual instruction emission for the stack VM."""
from __future__ import annotations

from enum import Enum
from typing import TextIO

from .symbol_table import Kind


#memory segments; the value is the word written in the output
class Segment(Enum):
    CONST = "constant"
    ARG = "argument"
    LOCAL = "local"
    STATIC = "static"
    THIS = "this"
    THAT = "that"
    POINTER = "pointer"
    TEMP = "temp"

    @classmethod
    def for_kind(cls, kind: Kind) -> Segment:
        try:
            return _KIND_SEGMENTS[kind]
        except KeyError:
            raise ValueError(f"no segment for storage kind {kind.name}") from None


_KIND_SEGMENTS = {
    Kind.STATIC: Segment.STATIC,
    Kind.FIELD: Segment.THIS,
    Kind.ARG: Segment.ARG,
    Kind.VAR: Segment.LOCAL,
}


#arithmetic and logical commands that take no operands
class Command(Enum):
    ADD = "add"
    SUB = "sub"
    NEG = "neg"
    EQ = "eq"
    GT = "gt"
    LT = "lt"
    AND = "and"
    OR = "or"
    NOT = "not"


#appends one instruction per line to the sink as it is generated
class VMWriter:
    def __init__(self, sink: TextIO) -> None:
        self._sink = sink
        self.count = 0

    def write_push(self, segment: Segment, index: int) -> None:
        self._write(f"push {segment.value} {index}")

    def write_pop(self, segment: Segment, index: int) -> None:
        if segment is Segment.CONST:
            raise ValueError("cannot pop into the constant segment")
        self._write(f"pop {segment.value} {index}")

    def write_arithmetic(self, command: Command) -> None:
        self._write(command.value)

    def write_label(self, label: str) -> None:
        self._write(f"label {label}")

    def write_goto(self, label: str) -> None:
        self._write(f"goto {label}")

    def write_if(self, label: str) -> None:
        self._write(f"if-goto {label}")

    def write_call(self, name: str, n_args: int) -> None:
        self._write(f"call {name} {n_args}")

    def write_function(self, name: str, n_locals: int) -> None:
        self._write(f"function {name} {n_locals}")

    def write_return(self) -> None:
        self._write("return")

    def _write(self, line: str) -> None:
        self._sink.write(line)
        self._sink.write("\n")
        self.count += 1


__all__ = ["Command", "Segment", "VMWriter"]
