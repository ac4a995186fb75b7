"""
Descriptor types for the qsfilter query language.

A FilterDescriptor is the compiled form of a filter query string: a
parameterized predicate plus preload, sort, pagination and aggregate
directives. Descriptors are immutable; both the string compiler and the
fluent builder produce them.

Example:
    FilterDescriptor(
        where=ParameterizedFilter("(a = ?) AND (b > ?)", ("1", "2")),
        preload=("team",),
        sort_descending_field="created_at",
        limit=10,
    )
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


PLACEHOLDER = "?"


# =============================================================================
# Parameterized Filter
# =============================================================================

@dataclass(frozen=True)
class ParameterizedFilter:
    """
    A predicate with positional ``?`` placeholders and matching arguments.

    Kept independent of any query library; the executor renders it into a
    SQLAlchemy clause.
    """
    predicate: str = ""
    args: Tuple[Any, ...] = ()

    @property
    def placeholder_count(self) -> int:
        return self.predicate.count(PLACEHOLDER)

    @property
    def is_empty(self) -> bool:
        return self.predicate == ""

    def _join(self, joiner: str, fragment: str, args: Tuple[Any, ...]) -> "ParameterizedFilter":
        if not fragment:
            return self
        if self.is_empty:
            return ParameterizedFilter(fragment, tuple(args))
        return ParameterizedFilter(
            f"{self.predicate}{joiner}{fragment}",
            self.args + tuple(args),
        )

    def and_(self, fragment: str, *args: Any) -> "ParameterizedFilter":
        """Return a new filter with ``fragment`` AND-ed on."""
        return self._join(" AND ", fragment, args)

    def or_(self, fragment: str, *args: Any) -> "ParameterizedFilter":
        """Return a new filter with ``fragment`` OR-ed on."""
        return self._join(" OR ", fragment, args)

    def __repr__(self):
        return f"ParameterizedFilter({self.predicate!r}, {list(self.args)!r})"


# =============================================================================
# Filter Descriptor
# =============================================================================

@dataclass(frozen=True)
class FilterDescriptor:
    """
    Compiled filter/sort/pagination/aggregate request.

    Attributes:
        where: Parameterized predicate (empty when there are no conditions)
        preload: Association names to eager-load, in request order
        sort_ascending_field: Field for ORDER BY ... ASC
        sort_descending_field: Field for ORDER BY ... DESC
        limit, offset, page, page_size: Pagination; 0 means unset
        aggregates: Aggregate function name -> fields it applies to, held
            in a read-only mapping
    """
    where: ParameterizedFilter = field(default_factory=ParameterizedFilter)
    preload: Tuple[str, ...] = ()
    sort_ascending_field: Optional[str] = None
    sort_descending_field: Optional[str] = None
    limit: int = 0
    offset: int = 0
    page: int = 0
    page_size: int = 0
    aggregates: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "preload", tuple(self.preload))
        object.__setattr__(self, "aggregates", MappingProxyType(
            {name: tuple(fields) for name, fields in self.aggregates.items()}
        ))

    def __hash__(self):
        return hash((
            self.where, self.preload, self.sort_ascending_field, self.sort_descending_field,
            self.limit, self.offset, self.page, self.page_size,
            frozenset(self.aggregates.items()),
        ))

    @property
    def predicate(self) -> str:
        return self.where.predicate

    @property
    def args(self) -> Tuple[Any, ...]:
        return self.where.args

    @property
    def has_conditions(self) -> bool:
        return not self.where.is_empty

    @property
    def uses_page_pagination(self) -> bool:
        """True when page/pageSize are both set and take precedence over limit/offset."""
        return self.page > 0 and self.page_size > 0

    @property
    def has_pagination(self) -> bool:
        return bool(self.limit or self.offset or self.uses_page_pagination)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation using the query-string key names."""
        return {
            "predicate": self.predicate,
            "args": list(self.args),
            "preload": list(self.preload),
            "orderByASC": self.sort_ascending_field,
            "orderByDESC": self.sort_descending_field,
            "limit": self.limit,
            "offset": self.offset,
            "page": self.page,
            "pageSize": self.page_size,
            "aggregates": {name: list(fields) for name, fields in self.aggregates.items()},
        }

    def __repr__(self):
        parts = []
        if self.has_conditions:
            parts.append(f"where={self.where!r}")
        if self.preload:
            parts.append(f"preload={list(self.preload)}")
        if self.sort_ascending_field:
            parts.append(f"asc={self.sort_ascending_field!r}")
        if self.sort_descending_field:
            parts.append(f"desc={self.sort_descending_field!r}")
        for name in ("limit", "offset", "page", "page_size"):
            value = getattr(self, name)
            if value:
                parts.append(f"{name}={value}")
        if self.aggregates:
            parts.append(f"aggregates={dict(self.aggregates)}")
        return f"FilterDescriptor({', '.join(parts)})"
