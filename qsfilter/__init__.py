"""
qsfilter - query-string filters for relational databases

Compiles compact, URL-query-like filter strings into parameterized,
composable descriptors and runs them with SQLAlchemy.

Design Principles:
- One small mini-language: '&' joins clauses, '|' joins alternatives,
  '__op' picks an operator
- Descriptors are immutable values shared by the compiler and the builder
- The predicate stays library-neutral; the executor renders it for SQLAlchemy

Example Usage:
    >>> from qsfilter import compile_filter
    >>> d = compile_filter("a=1&b__gt=2")
    >>> d.predicate
    '(a = ?) AND (b > ?)'
    >>> d.args
    ('1', '2')
"""

__version__ = "0.1.0"

# Query language
from qsfilter.query import (
    ParameterizedFilter,
    FilterDescriptor,
    ParseError,
    FilterCompiler,
    compile_filter,
    FilterBuilder,
    filter_builder,
    QueryExecutor,
    PaginatedResult,
    AggregateResult,
)

# Database
from qsfilter.db import Database

# Configuration
from qsfilter.config import QsfilterConfig, get_config, init_config

__all__ = [
    'ParameterizedFilter',
    'FilterDescriptor',
    'ParseError',
    'FilterCompiler',
    'compile_filter',
    'FilterBuilder',
    'filter_builder',
    'QueryExecutor',
    'PaginatedResult',
    'AggregateResult',
    'Database',
    'QsfilterConfig',
    'get_config',
    'init_config',
]
