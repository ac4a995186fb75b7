"""
Fluent builder for FilterDescriptors.

The builder is the programmatic counterpart of the string compiler. Every
method returns a new builder; the receiver is never changed, so a partially
built filter can be shared and extended safely.

Example:
    descriptor = (filter_builder()
        .equal('status', 'active')
        .greater_or_equal('age', 18)
        .date_range('created_at', '2024-01-01', '2024-12-31')
        .preload('team')
        .order_by_desc('created_at')
        .limit(20)
        .build())
"""

from dataclasses import replace
from typing import Any, Optional

from .descriptor import FilterDescriptor, ParameterizedFilter


class FilterBuilder:
    """Immutable fluent builder producing FilterDescriptor values."""

    def __init__(self, descriptor: Optional[FilterDescriptor] = None):
        self._descriptor = descriptor or FilterDescriptor()

    @classmethod
    def from_descriptor(cls, descriptor: FilterDescriptor) -> "FilterBuilder":
        """Start from an existing descriptor, e.g. a compiled one."""
        return cls(descriptor)

    def _with(self, **changes: Any) -> "FilterBuilder":
        return FilterBuilder(replace(self._descriptor, **changes))

    def _with_where(self, where: ParameterizedFilter) -> "FilterBuilder":
        return self._with(where=where)

    # -------------------------------------------------------------------------
    # Conditions
    # -------------------------------------------------------------------------

    def where(self, predicate: str, *args: Any) -> "FilterBuilder":
        """Set the base condition, replacing any existing one."""
        return self._with_where(ParameterizedFilter(predicate, tuple(args)))

    def and_(self, predicate: str, *args: Any) -> "FilterBuilder":
        """Append an AND sub-clause."""
        return self._with_where(self._descriptor.where.and_(predicate, *args))

    def or_(self, predicate: str, *args: Any) -> "FilterBuilder":
        """Append an OR sub-clause."""
        return self._with_where(self._descriptor.where.or_(predicate, *args))

    def _compare(self, field: str, op: str, value: Any) -> "FilterBuilder":
        return self.and_(f"{field} {op} ?", value)

    def equal(self, field: str, value: Any) -> "FilterBuilder":
        """Append field = value."""
        return self._compare(field, '=', value)

    def not_equal(self, field: str, value: Any) -> "FilterBuilder":
        """Append field != value."""
        return self._compare(field, '!=', value)

    def greater_than(self, field: str, value: Any) -> "FilterBuilder":
        """Append field > value."""
        return self._compare(field, '>', value)

    def greater_or_equal(self, field: str, value: Any) -> "FilterBuilder":
        """Append field >= value."""
        return self._compare(field, '>=', value)

    def less_than(self, field: str, value: Any) -> "FilterBuilder":
        """Append field < value."""
        return self._compare(field, '<', value)

    def less_or_equal(self, field: str, value: Any) -> "FilterBuilder":
        """Append field <= value."""
        return self._compare(field, '<=', value)

    def like(self, field: str, pattern: str) -> "FilterBuilder":
        """Append field LIKE pattern."""
        return self._compare(field, 'LIKE', pattern)

    def is_(self, field: str, value: Any) -> "FilterBuilder":
        """Append field IS value."""
        return self._compare(field, 'IS', value)

    def is_not(self, field: str, value: Any) -> "FilterBuilder":
        """Append field IS NOT value."""
        return self._compare(field, 'IS NOT', value)

    def length_greater_than(self, field: str, length: int) -> "FilterBuilder":
        """Append LENGTH(field) > length."""
        return self.and_(f"LENGTH({field}) > ?", length)

    def date_range(self, field: str, start: Any, end: Any) -> "FilterBuilder":
        """Inclusive range: ``field >= start AND field <= end``."""
        return self.and_(f"{field} >= ? AND {field} <= ?", start, end)

    # -------------------------------------------------------------------------
    # Directives
    # -------------------------------------------------------------------------

    def limit(self, n: int) -> "FilterBuilder":
        """Set maximum number of rows."""
        return self._with(limit=n)

    def offset(self, n: int) -> "FilterBuilder":
        """Set number of rows to skip."""
        return self._with(offset=n)

    def page(self, n: int) -> "FilterBuilder":
        """Set 1-based page number."""
        return self._with(page=n)

    def page_size(self, n: int) -> "FilterBuilder":
        """Set rows per page."""
        return self._with(page_size=n)

    def order_by_asc(self, field: str) -> "FilterBuilder":
        """Sort ascending by field."""
        return self._with(sort_ascending_field=field)

    def order_by_desc(self, field: str) -> "FilterBuilder":
        """Sort descending by field."""
        return self._with(sort_descending_field=field)

    def preload(self, *names: str) -> "FilterBuilder":
        """Append association names to eager-load."""
        return self._with(preload=self._descriptor.preload + names)

    def aggregate(self, func: str, *fields: str) -> "FilterBuilder":
        """Set the fields for an aggregate function (replaces earlier ones)."""
        # Copy: the descriptor's mapping is read-only
        aggregates = {**self._descriptor.aggregates, func: tuple(fields)}
        return self._with(aggregates=aggregates)

    def build(self) -> FilterDescriptor:
        """Return the built descriptor."""
        return self._descriptor

    def __repr__(self):
        return f"FilterBuilder({self._descriptor!r})"


def filter_builder() -> FilterBuilder:
    """Create a new, empty filter builder."""
    return FilterBuilder()
