"""
Constants for qsfilter.

Keywords of the filter mini-language and sensible defaults used by the
executor and CLI. Defaults are also available via the config system.
"""

# Clause separators
CLAUSE_SEPARATOR = "&"
ALTERNATIVE_SEPARATOR = "|"
OPERATOR_SEPARATOR = "__"

# Directive prefixes
AGGREGATE_PREFIX = "agg__"
PRELOAD_PREFIX = "with_"
IGNORED_PREFIXES = ("useData", "useCache")

# Single-value directive keys
ORDER_BY_ASC = "orderByASC"
ORDER_BY_DESC = "orderByDESC"
LIMIT = "limit"
OFFSET = "offset"
PAGE = "page"
PAGE_SIZE = "pageSize"

NUMERIC_KEYS = (LIMIT, OFFSET, PAGE, PAGE_SIZE)
DIRECTIVE_KEYS = (ORDER_BY_ASC, ORDER_BY_DESC) + NUMERIC_KEYS

# Pagination
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Aggregates understood by the executor
AGGREGATE_FUNCTIONS = ("sum", "avg", "min", "max", "count")
