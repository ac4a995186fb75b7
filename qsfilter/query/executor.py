"""
Query execution for qsfilter descriptors.

Applies a FilterDescriptor to SQLAlchemy statements and runs them. Targets
may be ORM mapped classes or Core Table objects.

The executor handles:
- Rendering ``?`` placeholders into bound parameters
- Preload hints (selectinload for ORM relationships)
- ORDER BY for the ascending and descending sort fields
- limit/offset or page/pageSize pagination
- Aggregates for ``agg__`` directives

When both page/pageSize and limit/offset are present, page pagination wins.
"""

import logging
import re
from typing import Any, List, Optional, Union

from sqlalchemy import Select, Table, func, inspect, literal_column, select, text
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql.elements import TextClause

from qsfilter.constants import AGGREGATE_FUNCTIONS, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from .compiler import compile_filter
from .descriptor import FilterDescriptor, ParameterizedFilter
from .results import AggregateResult, PaginatedResult, page_offset

logger = logging.getLogger(__name__)

Target = Union[type, Table]

_PLACEHOLDER_RE = re.compile(r'\?')


class MissingWhereClauseError(ValueError):
    """Raised when a single-row lookup has no conditions."""
    pass


class UnsupportedAggregateError(ValueError):
    """Raised for aggregate functions the executor cannot translate."""
    pass


# =============================================================================
# Statement helpers
# =============================================================================

def to_sql_clause(where: ParameterizedFilter) -> TextClause:
    """
    Render a parameterized filter as a SQLAlchemy text clause.

    Positional ``?`` placeholders become named parameters ``:p0``, ``:p1``...
    bound to the arguments in order.
    """
    if where.placeholder_count != len(where.args):
        raise ValueError(
            f"Predicate has {where.placeholder_count} placeholders "
            f"but {len(where.args)} arguments: {where.predicate!r}"
        )

    names = []

    def _bind(match):
        name = f"p{len(names)}"
        names.append(name)
        return f":{name}"

    sql = _PLACEHOLDER_RE.sub(_bind, where.predicate)
    return text(sql).bindparams(**dict(zip(names, where.args)))


def _is_orm(target: Any) -> bool:
    return target is not None and hasattr(target, '__mapper__')


def _preload_options(target: Any, names) -> list:
    """Build loader options for preload names that are ORM relationships."""
    if not names:
        return []
    if not _is_orm(target):
        logger.debug(f"Ignoring preload {list(names)}: target is not an ORM model")
        return []

    relationships = inspect(target).relationships
    options = []
    for name in names:
        if name not in relationships:
            logger.debug(f"Ignoring unknown preload association {name!r} on {target.__name__}")
            continue
        options.append(selectinload(getattr(target, name)))
    return options


def apply_filter(stmt: Select, descriptor: FilterDescriptor, target: Optional[Target] = None) -> Select:
    """Apply WHERE and preload hints only."""
    if descriptor.has_conditions:
        stmt = stmt.where(to_sql_clause(descriptor.where))
    options = _preload_options(target, descriptor.preload)
    if options:
        stmt = stmt.options(*options)
    return stmt


def apply_sort(stmt: Select, descriptor: FilterDescriptor) -> Select:
    """Apply ORDER BY: ascending field first, then descending field."""
    if descriptor.sort_ascending_field:
        stmt = stmt.order_by(text(f"{descriptor.sort_ascending_field} ASC"))
    if descriptor.sort_descending_field:
        stmt = stmt.order_by(text(f"{descriptor.sort_descending_field} DESC"))
    return stmt


def apply_pagination(stmt: Select, descriptor: FilterDescriptor) -> Select:
    """Apply page/pageSize if both are set, otherwise limit/offset."""
    if descriptor.uses_page_pagination:
        return stmt.offset(page_offset(descriptor.page, descriptor.page_size)).limit(descriptor.page_size)
    if descriptor.limit > 0:
        stmt = stmt.limit(descriptor.limit)
    if descriptor.offset > 0:
        stmt = stmt.offset(descriptor.offset)
    return stmt


def apply_descriptor(stmt: Select, descriptor: FilterDescriptor, target: Optional[Target] = None) -> Select:
    """
    Apply every part of a descriptor except aggregates to a select.

    Args:
        stmt: Base statement, e.g. ``select(User)``
        descriptor: Compiled or built descriptor
        target: ORM model used to resolve preload names

    Returns:
        New statement
    """
    stmt = apply_filter(stmt, descriptor, target)
    stmt = apply_sort(stmt, descriptor)
    return apply_pagination(stmt, descriptor)


# =============================================================================
# Query Executor
# =============================================================================

class QueryExecutor:
    """
    Runs descriptors against a database session.

    Read-only: the executor never adds, flushes or commits.
    """

    def __init__(self, session: Session, default_page_size: int = DEFAULT_PAGE_SIZE,
                 max_page_size: int = MAX_PAGE_SIZE):
        self.session = session
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def _fetch(self, stmt: Select, target: Target) -> List[Any]:
        if _is_orm(target):
            return list(self.session.scalars(stmt).all())
        return list(self.session.execute(stmt).all())

    def all(self, target: Target, descriptor: Optional[FilterDescriptor] = None) -> List[Any]:
        """Return every row matching the descriptor, sorted and paginated."""
        descriptor = descriptor or FilterDescriptor()
        stmt = apply_descriptor(select(target), descriptor, target)
        return self._fetch(stmt, target)

    def first(self, target: Target, descriptor: FilterDescriptor) -> Optional[Any]:
        """
        Return the first matching row, or None.

        Raises:
            MissingWhereClauseError: If the descriptor has no conditions
        """
        if not descriptor.has_conditions:
            raise MissingWhereClauseError("Refusing single-row lookup without a where clause")
        stmt = apply_sort(apply_filter(select(target), descriptor, target), descriptor).limit(1)
        rows = self._fetch(stmt, target)
        return rows[0] if rows else None

    def count(self, target: Target, descriptor: Optional[FilterDescriptor] = None) -> int:
        """Count rows matching the descriptor's conditions."""
        stmt = select(func.count()).select_from(target)
        if descriptor is not None and descriptor.has_conditions:
            stmt = stmt.where(to_sql_clause(descriptor.where))
        return self.session.execute(stmt).scalar_one()

    def paginate(self, target: Target, descriptor: Optional[FilterDescriptor] = None,
                 page: Optional[int] = None, page_size: Optional[int] = None) -> PaginatedResult:
        """
        Return one page of results.

        Explicit ``page``/``page_size`` arguments override the descriptor's,
        which override the configured default page size. Page sizes are
        clamped to ``max_page_size``.
        """
        descriptor = descriptor or FilterDescriptor()
        page = max(page or descriptor.page or 1, 1)
        page_size = page_size or descriptor.page_size or self.default_page_size
        if self.max_page_size and page_size > self.max_page_size:
            logger.debug(f"Clamping page size {page_size} to {self.max_page_size}")
            page_size = self.max_page_size

        count = self.count(target, descriptor)

        stmt = apply_sort(apply_filter(select(target), descriptor, target), descriptor)
        stmt = stmt.offset(page_offset(page, page_size)).limit(page_size)
        rows = self._fetch(stmt, target)

        return PaginatedResult.build(rows, count=count, page=page, page_size=page_size)

    def aggregate(self, target: Target, descriptor: FilterDescriptor) -> AggregateResult:
        """
        Compute the descriptor's aggregates over its matching rows.

        Raises:
            UnsupportedAggregateError: For functions other than sum, avg,
                min, max and count
        """
        if not descriptor.aggregates:
            return AggregateResult()

        columns = []
        keys = []
        for func_name, fields in descriptor.aggregates.items():
            name = func_name.lower()
            if name not in AGGREGATE_FUNCTIONS:
                raise UnsupportedAggregateError(f"Unsupported aggregate function: {func_name}")
            for field_name in fields:
                label = f"agg_{len(columns)}"
                columns.append(getattr(func, name)(literal_column(field_name)).label(label))
                keys.append((func_name, field_name))

        stmt = select(*columns).select_from(target)
        if descriptor.has_conditions:
            stmt = stmt.where(to_sql_clause(descriptor.where))

        row = self.session.execute(stmt).one()
        values = {}
        for (func_name, field_name), value in zip(keys, row):
            values.setdefault(func_name, {})[field_name] = value
        return AggregateResult(values)


def execute(session: Session, target: Target, raw: str, strict: bool = False) -> List[Any]:
    """
    Compile a query string and return all matching rows.

    Convenience function for one-off queries.
    """
    descriptor = compile_filter(raw, strict=strict)
    return QueryExecutor(session).all(target, descriptor)
