"""
OData filter predicates for list store queries.

Filters are built as small immutable values and serialized by the store
adapter, so no service ever concatenates user input into a filter string.

Usage:
    from shared.filters import And, Eq

    predicate = And(Eq("Title", "O'HARA-1"), Eq("Certificado", "SANIPES"))
    predicate.to_odata()
    # "(Title eq 'O''HARA-1') and (Certificado eq 'SANIPES')"
"""

from dataclasses import dataclass
from typing import Union


FilterValue = Union[str, int, bool]


def escape_odata_string(value: str) -> str:
    """
    Escape a string literal for an OData filter.

    Every single quote is doubled; None is treated as empty.

    Args:
        value: Raw user-supplied string

    Returns:
        Escaped string (without the surrounding quotes)
    """
    return (value or "").replace("'", "''")


def format_value(value: FilterValue) -> str:
    """Render a literal for the right-hand side of a comparison."""
    # bool first: bool is a subclass of int
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    return f"'{escape_odata_string(value)}'"


@dataclass(frozen=True)
class Eq:
    """Equality clause: ``field eq value``."""

    field: str
    value: FilterValue

    def to_odata(self) -> str:
        return f"{self.field} eq {format_value(self.value)}"


@dataclass(frozen=True, init=False)
class And:
    """Conjunction of clauses."""

    clauses: tuple["Predicate", ...]

    def __init__(self, *clauses: "Predicate"):
        if not clauses:
            raise ValueError("And() requires at least one clause")
        object.__setattr__(self, "clauses", clauses)

    def to_odata(self) -> str:
        return _join(self.clauses, "and")


@dataclass(frozen=True, init=False)
class Or:
    """Disjunction of clauses."""

    clauses: tuple["Predicate", ...]

    def __init__(self, *clauses: "Predicate"):
        if not clauses:
            raise ValueError("Or() requires at least one clause")
        object.__setattr__(self, "clauses", clauses)

    def to_odata(self) -> str:
        return _join(self.clauses, "or")


Predicate = Union[Eq, And, Or]


def _join(clauses: tuple[Predicate, ...], operator: str) -> str:
    if len(clauses) == 1:
        return clauses[0].to_odata()
    return f" {operator} ".join(f"({c.to_odata()})" for c in clauses)
