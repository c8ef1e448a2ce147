"""Structural translation between records and request/response shapes.

Nothing here validates; shapes arrive already checked. Identifiers are
never taken from a request shape: storage assigns them on insert.
"""

from typing import Any, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel

from .models import utcnow
from .query import PageDescriptor, ResultPage
from .schemas import PageOut

R = TypeVar("R")
S = TypeVar("S", bound=BaseModel)

PROTECTED_FIELDS = frozenset({"id", "created_at", "updated_at"})


def _writable(model: Type[Any], shape: BaseModel, only_set: bool) -> dict:
    data = shape.model_dump(exclude_unset=only_set)
    return {k: v for k, v in data.items() if k not in PROTECTED_FIELDS and k in model.model_fields}


def to_record(model: Type[R], shape: BaseModel) -> R:
    """Build a new, not yet persisted record from a request shape."""
    return model(**_writable(model, shape, only_set=False))


def apply_changes(record: Any, shape: BaseModel, partial: bool = True) -> Any:
    """Copy fields from `shape` onto `record` in place.

    With `partial=True` only fields the caller actually supplied are
    copied; otherwise every field of the shape overwrites the record.
    """
    for key, value in _writable(type(record), shape, only_set=partial).items():
        setattr(record, key, value)
    record.updated_at = utcnow()
    return record


def to_response(shape_cls: Type[S], record: Any, **extra: Any) -> S:
    """Project `record` onto `shape_cls`; only declared fields are copied."""
    data = {name: getattr(record, name) for name in shape_cls.model_fields if hasattr(record, name)}
    data.update(extra)
    return shape_cls.model_validate(data)


def to_responses(shape_cls: Type[S], records: Iterable[Any]) -> list:
    return [to_response(shape_cls, r) for r in records]


def to_page(items: list, result: ResultPage, descriptor: Optional[PageDescriptor] = None) -> PageOut:
    """Wrap already-mapped `items` with the paging metadata of `result`."""
    sort = str(descriptor.sort) if descriptor is not None and descriptor.sort else None
    filters = [str(f) for f in descriptor.filters] if descriptor is not None else []
    return PageOut(
        items=items,
        page=result.page,
        size=result.size,
        total_elements=result.total,
        total_pages=result.total_pages,
        has_next=result.has_next,
        has_previous=result.has_previous,
        sort=sort,
        filters=filters,
    )
