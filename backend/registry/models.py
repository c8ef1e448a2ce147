"""SQLModel data models.

This module defines the registry's database tables using SQLModel.
Students reference their department through `department_id`; the ORM
relationships are navigation helpers only and the column stays the
authoritative link.
"""

from typing import Optional
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, timezone
from typing import List

# signed 64-bit INTEGER range shared by SQLite and PostgreSQL BIGINT
SQL_INT_MAX = 2**63 - 1
SQL_INT_MIN = -(2**63)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Department(SQLModel, table=True):
    """An academic department that students may belong to.

    Fields:
    - `name`: unique display name
    - `created_at` / `updated_at`: bookkeeping, never exposed by the API
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, nullable=False, unique=True, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    students: List['Student'] = Relationship(back_populates='department')


class Student(SQLModel, table=True):
    """A registered student.

    `department_id` is optional; deleting a department detaches its
    students rather than removing them.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, max_length=100)
    age: int
    email: str = Field(index=True, nullable=False, unique=True, max_length=254)
    department_id: Optional[int] = Field(default=None, foreign_key='department.id', index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    department: Optional[Department] = Relationship(back_populates='students')
