"""Pydantic request/response schemas used by the API.

Request shapes carry only the fields a caller may supply (never an `id`)
together with their field-level constraints. Response shapes carry only
the fields a caller may observe; bookkeeping columns such as
`created_at` stay internal.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.networks import validate_email
from typing import Dict, Generic, List, Optional, TypeVar

from .models import SQL_INT_MAX

T = TypeVar("T")

NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
MIN_AGE = 1
MAX_AGE = 150
EMAIL_MAX_LENGTH = 254


def _reject_null(value):
    if value is None:
        raise ValueError("must not be null")
    return value


def _reject_blank(value):
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
    return value


def _valid_email(value):
    # checked only; the address is stored exactly as the caller wrote it
    if isinstance(value, str):
        validate_email(value)
    return value


class StudentCreate(BaseModel):
    """Payload for registering a student."""
    name: str = Field(max_length=NAME_MAX_LENGTH)
    age: int = Field(ge=MIN_AGE, le=MAX_AGE)
    email: str = Field(max_length=EMAIL_MAX_LENGTH)
    department_id: Optional[int] = Field(default=None, ge=1, le=SQL_INT_MAX)

    @field_validator("name", "age", "email", mode="before")
    @classmethod
    def _not_null(cls, v):
        return _reject_null(v)

    @field_validator("name")
    @classmethod
    def _not_blank(cls, v):
        return _reject_blank(v)

    @field_validator("email")
    @classmethod
    def _email_format(cls, v):
        return _valid_email(v)


class StudentReplace(StudentCreate):
    """Full replacement payload (PUT); every writable field is required."""


class StudentUpdate(BaseModel):
    """Partial update payload (PATCH).

    Omitted fields are left untouched. `department_id: null` detaches the
    student; an explicit null for any other field is rejected.
    """
    name: Optional[str] = Field(default=None, max_length=NAME_MAX_LENGTH)
    age: Optional[int] = Field(default=None, ge=MIN_AGE, le=MAX_AGE)
    email: Optional[str] = Field(default=None, max_length=EMAIL_MAX_LENGTH)
    department_id: Optional[int] = Field(default=None, ge=1, le=SQL_INT_MAX)

    @field_validator("name", "age", "email", mode="before")
    @classmethod
    def _not_null(cls, v):
        return _reject_null(v)

    @field_validator("name")
    @classmethod
    def _not_blank(cls, v):
        return _reject_blank(v)

    @field_validator("email")
    @classmethod
    def _email_format(cls, v):
        return _valid_email(v)


class StudentOut(BaseModel):
    """Student as returned to callers."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    age: int
    email: str
    department_id: Optional[int] = None


class DepartmentCreate(BaseModel):
    """Payload for creating a department (also used for PUT)."""
    name: str = Field(max_length=NAME_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)

    @field_validator("name", mode="before")
    @classmethod
    def _not_null(cls, v):
        return _reject_null(v)

    @field_validator("name")
    @classmethod
    def _not_blank(cls, v):
        return _reject_blank(v)


class DepartmentUpdate(BaseModel):
    """Partial update payload for a department."""
    name: Optional[str] = Field(default=None, max_length=NAME_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)

    @field_validator("name", mode="before")
    @classmethod
    def _not_null(cls, v):
        return _reject_null(v)

    @field_validator("name")
    @classmethod
    def _not_blank(cls, v):
        return _reject_blank(v)


class DepartmentOut(BaseModel):
    """Department as returned to callers, with its current head count."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    student_count: int = 0


class PageOut(BaseModel, Generic[T]):
    """One page of a collection read plus its paging metadata."""
    items: List[T]
    page: int
    size: int
    total_elements: int
    total_pages: int
    has_next: bool
    has_previous: bool
    sort: Optional[str] = None
    filters: List[str] = Field(default_factory=list)


class ErrorOut(BaseModel):
    """Uniform error body for every non-2xx response."""
    timestamp: str
    status: int
    error: str
    message: str
    path: str
    request_id: Optional[str] = None
    errors: Optional[Dict[str, str]] = None
