"""SuiteQL text helpers.

SuiteQL is sent as plain text, so every user-controlled value interpolated
into a query goes through ``quote_literal``.

Examples:
    >>> escape_literal("O'Brien")
    "O''Brien"
    >>> quote_literal("O'Brien")
    "'O''Brien'"
    >>> in_list(["3DCART_1", "3DCART_2"])
    "('3DCART_1', '3DCART_2')"
"""

from typing import Any, Iterable


def escape_literal(value: Any) -> str:
    """Double single quotes inside a string literal."""
    return str(value).replace("'", "''")


def quote_literal(value: Any) -> str:
    return f"'{escape_literal(value)}'"


def in_list(values: Iterable[Any]) -> str:
    """Parenthesised, quoted, comma-separated list for an ``IN`` predicate."""
    return "(" + ", ".join(quote_literal(v) for v in values) + ")"


def int_literal(value: Any) -> int:
    """Numeric id for unquoted comparisons (raises ValueError if not an int)."""
    return int(str(value).strip())
