"""Repository classes encapsulating database operations.

`CrudRepository` is the storage gateway shared by every resource: create,
paged read, read one, update and delete. Each write commits on its own so
a single record is never left half-written; on failure the session is
rolled back before the error propagates. Absent records are reported as
`None` / `False`, never as an exception.
"""

import logging
from typing import Callable, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, col, select

from . import models
from .errors import RecordConflict
from .models import SQL_INT_MAX
from .query import PageDescriptor, ResultPage, order_clauses, where_clauses

logger = logging.getLogger("registry.repositories")

M = TypeVar("M", bound=SQLModel)


class CrudRepository(Generic[M]):
    """Generic CRUD gateway for one table model."""
    model: Type[M]

    def __init__(self, session: Session, model: Optional[Type[M]] = None):
        self.session = session
        if model is not None:
            self.model = model

    def _commit(self):
        """Commit the unit of work, rolling back on any failure."""
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.info("integrity error on %s: %s", self.model.__name__, exc.orig)
            raise RecordConflict(f"{self.model.__name__.lower()} conflicts with existing data") from exc
        except Exception:
            self.session.rollback()
            raise

    def create(self, record: M) -> M:
        """Persist a new record and return it with its assigned id."""
        self.session.add(record)
        self._commit()
        self.session.refresh(record)
        return record

    def read_one(self, record_id: int) -> Optional[M]:
        """Return the record with primary key `record_id` or `None`.

        Ids outside the storable integer range cannot exist, so they are
        reported as absent without touching the database.
        """
        if not 0 < record_id <= SQL_INT_MAX:
            return None
        return self.session.get(self.model, record_id)

    def read_page(self, descriptor: PageDescriptor) -> ResultPage[M]:
        """Return one page of records matching the descriptor's filters.

        The total is counted with the same filters so the page metadata is
        consistent with the slice returned.
        """
        clauses = where_clauses(self.model, descriptor.filters)
        count_stmt = select(func.count()).select_from(self.model)
        stmt = select(self.model)
        if clauses:
            count_stmt = count_stmt.where(*clauses)
            stmt = stmt.where(*clauses)
        total = self.session.exec(count_stmt).one()
        stmt = stmt.order_by(*order_clauses(self.model, descriptor.sort))
        stmt = stmt.offset(descriptor.offset).limit(descriptor.size)
        items = list(self.session.exec(stmt).all())
        return ResultPage(items=items, total=total, page=descriptor.page, size=descriptor.size)

    def update(self, record_id: int, changes: Callable[[M], object]) -> Optional[M]:
        """Apply `changes` to the stored record and persist it.

        Returns the updated record, or `None` when no record has that id.
        """
        record = self.read_one(record_id)
        if record is None:
            return None
        changes(record)
        self.session.add(record)
        self._commit()
        self.session.refresh(record)
        return record

    def delete(self, record_id: int) -> bool:
        """Delete a record. Returns True if deleted, False if not found."""
        record = self.read_one(record_id)
        if record is None:
            return False
        self.session.delete(record)
        self._commit()
        return True


class StudentRepository(CrudRepository[models.Student]):
    """CRUD operations for `Student` records."""
    model = models.Student

    def get_by_email(self, email: str) -> Optional[models.Student]:
        """Return a `Student` by email (case-insensitive) or `None`."""
        stmt = select(models.Student).where(func.lower(models.Student.email) == email.lower())
        return self.session.exec(stmt).first()


class DepartmentRepository(CrudRepository[models.Department]):
    """CRUD operations for `Department` records and their student links."""
    model = models.Department

    def get_by_name(self, name: str) -> Optional[models.Department]:
        """Return a `Department` by exact name or `None`."""
        stmt = select(models.Department).where(models.Department.name == name)
        return self.session.exec(stmt).first()

    def count_students(self, department_ids: Iterable[int]) -> Dict[int, int]:
        """Return `{department_id: student_count}` for the given ids."""
        ids = list(department_ids)
        if not ids:
            return {}
        stmt = (
            select(models.Student.department_id, func.count(models.Student.id))
            .where(col(models.Student.department_id).in_(ids))
            .group_by(models.Student.department_id)
        )
        counts = {dept_id: 0 for dept_id in ids}
        for dept_id, count in self.session.exec(stmt).all():
            counts[dept_id] = count
        return counts

    def detach_students(self, department_id: int) -> List[models.Student]:
        """Clear `department_id` on every student of the department.

        Changes are staged on the session only; the caller commits.
        """
        stmt = select(models.Student).where(models.Student.department_id == department_id)
        students = list(self.session.exec(stmt).all())
        for s in students:
            s.department_id = None
            self.session.add(s)
        return students

    def delete(self, record_id: int) -> bool:
        """Delete a department after detaching its students, in one commit."""
        record = self.read_one(record_id)
        if record is None:
            return False
        detached = self.detach_students(record_id)
        self.session.flush()
        self.session.delete(record)
        self._commit()
        if detached:
            logger.info("detached %d students from department %s", len(detached), record_id)
        return True
