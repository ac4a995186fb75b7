"""
qsfilter query language - compact filter strings for relational queries.

This module provides:
- A compiler for URL-query-like filter strings
- An immutable fluent builder producing the same descriptors
- A SQLAlchemy executor that applies descriptors to statements

Example usage:

    from qsfilter.query import compile_filter, filter_builder, QueryExecutor

    d = compile_filter("age__gte=18&status=active|status=trial&orderByDESC=created_at&limit=20")
    d.predicate   # '(age >= ?) AND (status = ? OR status = ?)'
    d.args        # ('18', 'active', 'trial')

    # Same shape, built programmatically
    d = (filter_builder()
        .greater_or_equal('age', 18)
        .preload('team')
        .limit(20)
        .build())

    with db.session() as session:
        users = QueryExecutor(session).all(User, d)
"""

# Descriptors
from .descriptor import (
    ParameterizedFilter,
    FilterDescriptor,
)

# Compiler
from .compiler import (
    OPERATORS,
    ParseError,
    FilterCompiler,
    compile_filter,
    parse_condition,
)

# Builder
from .builder import (
    FilterBuilder,
    filter_builder,
)

# Results
from .results import (
    PaginatedResult,
    AggregateResult,
)

# Executor
from .executor import (
    MissingWhereClauseError,
    UnsupportedAggregateError,
    QueryExecutor,
    to_sql_clause,
    apply_filter,
    apply_sort,
    apply_pagination,
    apply_descriptor,
    execute,
)

__all__ = [
    # Descriptors
    'ParameterizedFilter',
    'FilterDescriptor',

    # Compiler
    'OPERATORS',
    'ParseError',
    'FilterCompiler',
    'compile_filter',
    'parse_condition',

    # Builder
    'FilterBuilder',
    'filter_builder',

    # Results
    'PaginatedResult',
    'AggregateResult',

    # Executor
    'MissingWhereClauseError',
    'UnsupportedAggregateError',
    'QueryExecutor',
    'to_sql_clause',
    'apply_filter',
    'apply_sort',
    'apply_pagination',
    'apply_descriptor',
    'execute',
]
