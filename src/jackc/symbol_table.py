"""Two-scope symbol table resolving names to storage kinds and indices."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .errors import SymbolError

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


#storage kinds; NONE is what kind_of reports for unknown names
class Kind(Enum):
    STATIC = "static"
    FIELD = "field"
    ARG = "argument"
    VAR = "local"
    NONE = "none"

    @property
    def is_class_scope(self) -> bool:
        return self in (Kind.STATIC, Kind.FIELD)


#one declared name with the slot assigned to it at declaration time
@dataclass(frozen=True, slots=True)
class Symbol:
    name: str
    type: str
    kind: Kind
    index: int


@dataclass(slots=True)
class SymbolTable:
    """Class scope (statics and fields) plus the current subroutine scope.

    Indices are handed out per kind in declaration order and never reused.
    Subroutine-scope names are looked up first, so an argument or local may
    shadow a field of the same name.
    """

    _class_scope: Dict[str, Symbol] = field(default_factory=dict)
    _subroutine_scope: Dict[str, Symbol] = field(default_factory=dict)
    _counts: Dict[Kind, int] = field(
        default_factory=lambda: {Kind.STATIC: 0, Kind.FIELD: 0, Kind.ARG: 0, Kind.VAR: 0}
    )

    #drops arguments and locals; statics and fields survive
    def reset_scope(self) -> None:
        self._subroutine_scope.clear()
        self._counts[Kind.ARG] = 0
        self._counts[Kind.VAR] = 0

    start_subroutine = reset_scope

    def define(self, name: str, type_: str, kind: Kind) -> Symbol:
        if not name:
            raise SymbolError("variable name cannot be empty")
        if not _IDENTIFIER.fullmatch(name):
            raise SymbolError(f"invalid variable name {name!r}")
        if kind is Kind.NONE:
            raise SymbolError(f"cannot define {name!r} without a storage kind")
        scope = self._class_scope if kind.is_class_scope else self._subroutine_scope
        if name in scope:
            raise SymbolError(f"variable {name!r} already defined")

        symbol = Symbol(name=name, type=type_, kind=kind, index=self._counts[kind])
        scope[name] = symbol
        self._counts[kind] += 1
        return symbol

    def var_count(self, kind: Kind) -> int:
        return self._counts.get(kind, 0)

    def lookup(self, name: str) -> Optional[Symbol]:
        symbol = self._subroutine_scope.get(name)
        if symbol is None:
            symbol = self._class_scope.get(name)
        return symbol

    def kind_of(self, name: str) -> Kind:
        symbol = self.lookup(name)
        return Kind.NONE if symbol is None else symbol.kind

    def type_of(self, name: str) -> str:
        return self._require(name).type

    def index_of(self, name: str) -> int:
        return self._require(name).index

    def _require(self, name: str) -> Symbol:
        symbol = self.lookup(name)
        if symbol is None:
            raise SymbolError(f"identifier {name!r} not found")
        return symbol


__all__ = ["Kind", "Symbol", "SymbolTable"]
