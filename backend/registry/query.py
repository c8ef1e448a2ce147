"""Query specification objects and their translation to SQL clauses.

Collection reads are described by a `PageDescriptor`: a page index and
size, an optional `SortSpec` and any number of `FilterSpec` tuples
(`field`, `operator`, `value`). Descriptors are built and checked here,
at request time, against the fields a resource allows; the repository
layer only translates an already-valid descriptor into SQL.

Filters always narrow the candidate set before paging is applied.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar, get_args

from .errors import InvalidQuery
from .models import SQL_INT_MAX, SQL_INT_MIN

T = TypeVar("T")

ASC = "asc"
DESC = "desc"
NULL_TOKEN = "null"


_TEXT_OPERATORS = {"contains", "startswith"}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "eq": lambda col, v: col.is_(None) if v is None else col == v,
    "ne": lambda col, v: col.is_not(None) if v is None else col != v,
    "lt": lambda col, v: col < v,
    "lte": lambda col, v: col <= v,
    "gt": lambda col, v: col > v,
    "gte": lambda col, v: col >= v,
    "contains": lambda col, v: col.ilike(f"%{_escape_like(v)}%", escape="\\"),
    "startswith": lambda col, v: col.ilike(f"{_escape_like(v)}%", escape="\\"),
}


@dataclass(frozen=True)
class SortSpec:
    """Sort on one field; `direction` is `asc` or `desc`."""
    field: str
    direction: str = ASC

    @classmethod
    def parse(cls, text: str) -> "SortSpec":
        """Parse `field` or `field,asc|desc`."""
        name, _, direction = text.partition(",")
        name = name.strip()
        direction = (direction.strip() or ASC).lower()
        if not name:
            raise InvalidQuery("sort field must not be empty")
        if direction not in (ASC, DESC):
            raise InvalidQuery(f"unknown sort direction '{direction}'; expected asc or desc")
        return cls(name, direction)

    def __str__(self) -> str:
        return f"{self.field},{self.direction}"


@dataclass(frozen=True)
class FilterSpec:
    """A single `field operator value` predicate."""
    field: str
    operator: str
    value: Any

    @classmethod
    def parse(cls, text: str) -> "FilterSpec":
        """Parse `field:operator:value`; the value may itself contain `:`."""
        parts = text.split(":", 2)
        if len(parts) != 3 or not parts[0].strip():
            raise InvalidQuery(f"invalid filter '{text}'; expected field:operator:value")
        name, operator, value = parts
        operator = operator.strip().lower()
        if operator not in OPERATORS:
            raise InvalidQuery(
                f"unknown filter operator '{operator}'; expected one of {', '.join(sorted(OPERATORS))}"
            )
        return cls(name.strip(), operator, value)

    def __str__(self) -> str:
        value = NULL_TOKEN if self.value is None else self.value
        return f"{self.field}:{self.operator}:{value}"


@dataclass(frozen=True)
class PageDescriptor:
    """A bounded slice of a collection: page index, size, sort and filters."""
    page: int
    size: int
    sort: Optional[SortSpec] = None
    filters: Tuple[FilterSpec, ...] = ()

    def __post_init__(self):
        if self.page < 0:
            raise ValueError("page index must be >= 0")
        if self.size <= 0:
            raise ValueError("page size must be > 0")

    @property
    def offset(self) -> int:
        return self.page * self.size


@dataclass
class ResultPage(Generic[T]):
    """Records of one page plus the total number of matching records."""
    items: List[T]
    total: int
    page: int
    size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.size) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 0 and self.total > 0


def _column(model, name: str):
    return model.__table__.columns[name]


def _field_type(model, name: str) -> type:
    """Python type declared for `name`, with `Optional[...]` unwrapped."""
    annotation = model.model_fields[name].annotation
    args = [a for a in get_args(annotation) if a is not type(None)]
    if args:
        annotation = args[0]
    return annotation if isinstance(annotation, type) else str


def _coerce(model, spec: FilterSpec) -> FilterSpec:
    """Convert the textual filter value to the field's Python type."""
    raw = spec.value
    if isinstance(raw, str) and raw.strip().lower() == NULL_TOKEN:
        if spec.operator not in ("eq", "ne"):
            raise InvalidQuery(f"filter on '{spec.field}': null only supports eq and ne")
        return FilterSpec(spec.field, spec.operator, None)
    python_type = _field_type(model, spec.field)
    if spec.operator in _TEXT_OPERATORS:
        if python_type is not str:
            raise InvalidQuery(f"operator '{spec.operator}' requires a text field; '{spec.field}' is not")
        return FilterSpec(spec.field, spec.operator, str(raw))
    if not isinstance(raw, str) or python_type is str:
        return spec
    try:
        if python_type is bool:
            lowered = raw.strip().lower()
            if lowered not in ("true", "false", "1", "0"):
                raise ValueError(raw)
            value = lowered in ("true", "1")
        else:
            value = python_type(raw.strip())
    except (TypeError, ValueError):
        raise InvalidQuery(f"invalid value '{raw}' for filter on '{spec.field}'")
    if isinstance(value, int) and not isinstance(value, bool) and not SQL_INT_MIN <= value <= SQL_INT_MAX:
        raise InvalidQuery(f"value '{raw}' for filter on '{spec.field}' is out of range")
    return FilterSpec(spec.field, spec.operator, value)


def build_page_descriptor(
    model,
    allowed_fields: Iterable[str],
    page: int,
    size: int,
    sort: Optional[str] = None,
    filters: Optional[Sequence[str]] = None,
    max_size: Optional[int] = None,
    extra_filters: Sequence[FilterSpec] = (),
) -> PageDescriptor:
    """Validate raw collection parameters and return a `PageDescriptor`.

    `sort` and `filters` use the textual forms of `SortSpec` and
    `FilterSpec`. Any field outside `allowed_fields` raises `InvalidQuery`
    rather than being ignored. `extra_filters` are trusted predicates added
    by the caller (e.g. scoping to a parent record).
    """
    allowed = set(allowed_fields)
    if page < 0:
        raise InvalidQuery("page index must be >= 0")
    if size <= 0:
        raise InvalidQuery("page size must be > 0")
    if max_size is not None and size > max_size:
        raise InvalidQuery(f"page size must be <= {max_size}")
    if page * size > SQL_INT_MAX:
        raise InvalidQuery("page index is out of range")

    sort_spec = None
    if sort is not None and sort.strip():
        sort_spec = SortSpec.parse(sort)
        if sort_spec.field not in allowed:
            raise InvalidQuery(f"cannot sort by unknown field '{sort_spec.field}'")

    specs: List[FilterSpec] = []
    for text in filters or ():
        spec = FilterSpec.parse(text)
        if spec.field not in allowed:
            raise InvalidQuery(f"cannot filter by unknown field '{spec.field}'")
        specs.append(_coerce(model, spec))
    specs.extend(extra_filters)
    return PageDescriptor(page=page, size=size, sort=sort_spec, filters=tuple(specs))


def where_clauses(model, filters: Iterable[FilterSpec]) -> List[Any]:
    """Translate filter specs into SQLAlchemy boolean clauses."""
    return [OPERATORS[f.operator](_column(model, f.field), f.value) for f in filters]


def order_clauses(model, sort: Optional[SortSpec]) -> List[Any]:
    """Return ORDER BY clauses; the primary key always breaks ties."""
    pk = _column(model, "id")
    if sort is None or sort.field == "id":
        return [pk.desc() if sort is not None and sort.direction == DESC else pk.asc()]
    col = _column(model, sort.field)
    return [col.desc() if sort.direction == DESC else col.asc(), pk.asc()]
