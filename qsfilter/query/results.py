"""
Result types returned by the query executor.

- PaginatedResult: one page of rows plus page arithmetic
- AggregateResult: aggregate values keyed by function and field
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional


# =============================================================================
# Paginated Result
# =============================================================================

@dataclass
class PaginatedResult:
    """
    One page of query results.

    Supports iteration and len() over the rows of the page.
    """
    results: List[Any] = field(default_factory=list)
    count: int = 0           # Total matching rows across all pages
    total_pages: int = 0
    has_next: bool = False
    has_prev: bool = False
    page: int = 1
    page_size: int = 0

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.results)

    @classmethod
    def build(cls, results: List[Any], count: int, page: int, page_size: int) -> "PaginatedResult":
        """Create a result, deriving page counts from ``count`` and ``page_size``."""
        total_pages = total_pages_for(count, page_size)
        return cls(
            results=list(results),
            count=count,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
            page=page,
            page_size=page_size,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            'results': [serialize_row(row) for row in self.results],
            'count': self.count,
            'totalPages': self.total_pages,
            'hasNext': self.has_next,
            'hasPrev': self.has_prev,
            'page': self.page,
            'pageSize': self.page_size,
        }


def total_pages_for(count: int, page_size: int) -> int:
    """Number of pages needed for ``count`` rows."""
    if page_size <= 0:
        return 0
    pages, remainder = divmod(count, page_size)
    if remainder:
        pages += 1
    return pages


def page_offset(page: int, page_size: int) -> int:
    """Row offset of the first row on ``page`` (1-based)."""
    return max(page - 1, 0) * page_size


def serialize_row(row: Any) -> Any:
    """Convert a Row or ORM instance to a plain dict."""
    if hasattr(row, '_asdict'):
        return dict(row._asdict())
    if hasattr(row, 'to_dict'):
        return row.to_dict()
    if hasattr(row, '__table__'):
        return {c.key: getattr(row, c.key) for c in row.__table__.columns}
    return row


# =============================================================================
# Aggregate Result
# =============================================================================

@dataclass
class AggregateResult:
    """
    Aggregate values for a descriptor's ``agg__`` directives.

    Example:
        AggregateResult({'sum': {'amount': 120, 'tax': 12}})
    """
    values: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def get(self, func: str, field_name: str, default: Optional[Any] = None) -> Any:
        return self.values.get(func, {}).get(field_name, default)

    def __bool__(self) -> bool:
        return bool(self.values)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {func: dict(fields) for func, fields in self.values.items()}
