"""
Compiler for qsfilter query strings.

Turns a URL-query-like filter string into a FilterDescriptor.

Example:

    age__gte=18&status=active|status=trial&with_team&orderByDESC=created_at&limit=20

compiles to:

    predicate: (age >= ?) AND (status = ? OR status = ?)
    args:      ['18', 'active', 'trial']
    preload:   ['team']
    sort:      created_at DESC
    limit:     20

Clauses are separated by '&'. Each clause is checked, in order, for an
aggregate directive (agg__fn=f1|f2), emptiness, an ignore marker
(useData..., useCache...), a preload directive (with_x|with_y), a sort or
pagination key (orderByASC, orderByDESC, limit, offset, page, pageSize) and
finally parsed as an OR-group of field[__op]=value conditions.

Malformed conditions inside an OR-group are dropped rather than rejected.
Callers that need feedback can pass ``on_skip`` or enable ``strict``.
"""

import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from qsfilter.constants import (
    AGGREGATE_PREFIX,
    ALTERNATIVE_SEPARATOR,
    CLAUSE_SEPARATOR,
    DIRECTIVE_KEYS,
    IGNORED_PREFIXES,
    LIMIT,
    NUMERIC_KEYS,
    OFFSET,
    OPERATOR_SEPARATOR,
    ORDER_BY_ASC,
    ORDER_BY_DESC,
    PAGE,
    PAGE_SIZE,
    PRELOAD_PREFIX,
)
from .descriptor import PLACEHOLDER, FilterDescriptor, ParameterizedFilter

logger = logging.getLogger(__name__)


# Operator suffix -> SQL operator. Anything else means equality.
# 'not' renders as a bare keyword ("field NOT ?") for compatibility with
# existing clients.
OPERATORS = {
    'gt': '>',
    'gte': '>=',
    'lt': '<',
    'lte': '<=',
    'ne': '!=',
    'not': 'NOT',
}
DEFAULT_OPERATOR = '='

_INTEGER_RE = re.compile(r'[+-]?[0-9]+')

SkipHook = Callable[[str, str], None]


class ParseError(ValueError):
    """Error compiling a filter query string."""

    def __init__(self, message: str, key: Optional[str] = None, value: Optional[str] = None):
        super().__init__(message)
        self.key = key
        self.value = value


def parse_condition(piece: str) -> Optional[Tuple[str, str]]:
    """
    Parse a single ``field[__op]=value`` condition.

    Returns:
        Tuple of (SQL fragment with one placeholder, raw value), or None if
        the piece is not a key=value pair or its field contains a placeholder.
    """
    key, sep, value = piece.partition('=')
    if not sep or not key:
        return None

    field, _, suffix = key.partition(OPERATOR_SEPARATOR)
    if PLACEHOLDER in field:
        return None
    op = OPERATORS.get(suffix, DEFAULT_OPERATOR)
    return f"{field} {op} ?", value


def parse_integer(key: str, value: str) -> int:
    """
    Parse a pagination value as a non-negative base-10 integer.

    limit, offset, page and pageSize are non-negative on every descriptor,
    so a signed negative value is rejected along with non-integers.
    """
    if not _INTEGER_RE.fullmatch(value):
        raise ParseError(f"Invalid integer for {key!r}: {value!r}", key=key, value=value)
    number = int(value)
    if number < 0:
        raise ParseError(f"{key!r} must not be negative: {value!r}", key=key, value=value)
    return number


class FilterCompiler:
    """
    Compiler for filter query strings.

    Holds only options; every call to compile() works on local state, so a
    single instance can be shared between threads.
    """

    def __init__(self, strict: bool = False, on_skip: Optional[SkipHook] = None):
        """
        Initialize compiler.

        Args:
            strict: Raise ParseError for malformed conditions instead of
                dropping them
            on_skip: Called with (fragment, reason) whenever a fragment is
                dropped
        """
        self.strict = strict
        self.on_skip = on_skip

    def compile(self, raw: str) -> FilterDescriptor:
        """
        Compile a query string.

        Args:
            raw: Decoded query string, e.g. ``a=1&b__gt=2``

        Returns:
            Compiled FilterDescriptor

        Raises:
            ParseError: If a numeric pagination value is not a valid integer
        """
        where = ParameterizedFilter()
        preload: List[str] = []
        aggregates: Dict[str, Tuple[str, ...]] = {}
        values: Dict[str, Any] = {}

        for clause in (raw or "").split(CLAUSE_SEPARATOR):
            if clause.startswith(AGGREGATE_PREFIX):
                name, sep, fields = clause.partition('=')
                if not sep:
                    self._skip(clause, "aggregate directive without '='")
                    continue
                aggregates[name[len(AGGREGATE_PREFIX):]] = tuple(fields.split(ALTERNATIVE_SEPARATOR))
                continue

            if not clause:
                continue

            if clause.startswith(IGNORED_PREFIXES):
                continue

            if clause.startswith(PRELOAD_PREFIX):
                for name in clause.split(ALTERNATIVE_SEPARATOR):
                    preload.append(_strip_prefix(name, PRELOAD_PREFIX))
                continue

            parts = clause.split('=')
            if len(parts) == 2 and parts[0] in DIRECTIVE_KEYS:
                key, value = parts
                if key in NUMERIC_KEYS:
                    values[key] = parse_integer(key, value)
                else:
                    values[key] = value
                continue

            where = self._compile_or_group(clause, where)

        descriptor = FilterDescriptor(
            where=where,
            preload=tuple(preload),
            sort_ascending_field=values.get(ORDER_BY_ASC),
            sort_descending_field=values.get(ORDER_BY_DESC),
            limit=values.get(LIMIT, 0),
            offset=values.get(OFFSET, 0),
            page=values.get(PAGE, 0),
            page_size=values.get(PAGE_SIZE, 0),
            aggregates=aggregates,
        )
        logger.debug(f"Compiled {raw!r} -> {descriptor!r}")
        return descriptor

    def _compile_or_group(self, clause: str, where: ParameterizedFilter) -> ParameterizedFilter:
        """Parse one OR-group and AND it onto ``where``."""
        fragments = []
        args = []

        for piece in clause.split(ALTERNATIVE_SEPARATOR):
            parsed = parse_condition(piece)
            if parsed is None:
                self._skip(piece, "condition is not a field=value pair")
                continue
            fragment, value = parsed
            fragments.append(fragment)
            args.append(value)

        if not fragments:
            return where
        return where.and_(f"({' OR '.join(fragments)})", *args)

    def _skip(self, fragment: str, reason: str) -> None:
        if self.strict:
            raise ParseError(f"Malformed filter fragment {fragment!r}: {reason}", value=fragment)
        logger.debug(f"Skipping filter fragment {fragment!r}: {reason}")
        if self.on_skip is not None:
            self.on_skip(fragment, reason)


def _strip_prefix(s: str, prefix: str) -> str:
    if s.startswith(prefix):
        return s[len(prefix):]
    return s


def compile_filter(raw: str, strict: bool = False, on_skip: Optional[SkipHook] = None) -> FilterDescriptor:
    """
    Compile a query string.

    Convenience function that creates a compiler and compiles.
    """
    compiler = FilterCompiler(strict=strict, on_skip=on_skip)
    return compiler.compile(raw)
