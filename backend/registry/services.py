"""Business logic services used by HTTP controllers.

Services coordinate repositories, the shape mapper and the query
builder. They check the rules a single request shape cannot express on
its own (unique emails and names, referenced departments must exist)
and leave everything else to the storage gateway. A missing record is a
normal outcome: lookups return `None` and deletes return `False`.
"""

import json
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from sqlmodel import Session

from . import mapper, models, repositories
from .config import settings
from .errors import RecordConflict, ValidationFailed
from .query import FilterSpec, PageDescriptor, ResultPage, build_page_descriptor
from .schemas import DepartmentCreate, DepartmentUpdate, StudentCreate, StudentUpdate

logger = logging.getLogger("registry.services")

STUDENT_QUERY_FIELDS = ("id", "name", "age", "email", "department_id")
DEPARTMENT_QUERY_FIELDS = ("id", "name", "description")


def _log_event(event: str, **fields) -> None:
    logger.info("%s %s", event, json.dumps(fields, ensure_ascii=True, default=str))


def _descriptor(model, allowed, page, size, sort, filters, extra_filters=()) -> PageDescriptor:
    return build_page_descriptor(
        model,
        allowed,
        page=page,
        size=size if size is not None else settings.DEFAULT_PAGE_SIZE,
        sort=sort,
        filters=filters,
        max_size=settings.MAX_PAGE_SIZE,
        extra_filters=extra_filters,
    )


class StudentService:
    """Register, look up, change and remove students."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.StudentRepository(session)
        self.dept_repo = repositories.DepartmentRepository(session)

    def _check_department(self, department_id: Optional[int]):
        if department_id is not None and self.dept_repo.read_one(department_id) is None:
            raise ValidationFailed({"department_id": f"department {department_id} does not exist"})

    def _check_email_free(self, email: str, student_id: Optional[int] = None):
        existing = self.repo.get_by_email(email)
        if existing is not None and existing.id != student_id:
            raise RecordConflict(f"email {email} is already registered")

    def create(self, payload: StudentCreate) -> models.Student:
        """Persist a new student and return it with its id."""
        self._check_department(payload.department_id)
        self._check_email_free(payload.email)
        student = self.repo.create(mapper.to_record(models.Student, payload))
        _log_event("student_created", id=student.id, department_id=student.department_id)
        return student

    def get(self, student_id: int) -> Optional[models.Student]:
        return self.repo.read_one(student_id)

    def list_page(
        self,
        page: int = 0,
        size: Optional[int] = None,
        sort: Optional[str] = None,
        filters: Optional[Sequence[str]] = None,
        extra_filters: Sequence[FilterSpec] = (),
    ) -> Tuple[PageDescriptor, ResultPage]:
        """Build a page descriptor from raw parameters and read that page."""
        descriptor = _descriptor(models.Student, STUDENT_QUERY_FIELDS, page, size, sort, filters, extra_filters)
        return descriptor, self.repo.read_page(descriptor)

    def replace(self, student_id: int, payload: StudentCreate) -> Optional[models.Student]:
        """Overwrite every writable field; `None` if the student is absent."""
        if self.repo.read_one(student_id) is None:
            return None
        self._check_department(payload.department_id)
        self._check_email_free(payload.email, student_id)
        student = self.repo.update(student_id, lambda s: mapper.apply_changes(s, payload, partial=False))
        _log_event("student_replaced", id=student_id)
        return student

    def update(self, student_id: int, payload: StudentUpdate) -> Optional[models.Student]:
        """Apply only the fields present in `payload`; `None` if absent."""
        if self.repo.read_one(student_id) is None:
            return None
        supplied = payload.model_fields_set
        if "department_id" in supplied:
            self._check_department(payload.department_id)
        if "email" in supplied:
            self._check_email_free(payload.email, student_id)
        student = self.repo.update(student_id, lambda s: mapper.apply_changes(s, payload, partial=True))
        _log_event("student_updated", id=student_id, fields=sorted(supplied))
        return student

    def delete(self, student_id: int) -> bool:
        deleted = self.repo.delete(student_id)
        if deleted:
            _log_event("student_deleted", id=student_id)
        return deleted


class DepartmentService:
    """Manage departments and the students assigned to them."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.DepartmentRepository(session)
        self.students = StudentService(session)

    def _check_name_free(self, name: str, department_id: Optional[int] = None):
        existing = self.repo.get_by_name(name)
        if existing is not None and existing.id != department_id:
            raise RecordConflict(f"department {name} already exists")

    def student_counts(self, departments: List[models.Department]) -> Dict[int, int]:
        return self.repo.count_students(d.id for d in departments)

    def create(self, payload: DepartmentCreate) -> models.Department:
        self._check_name_free(payload.name)
        department = self.repo.create(mapper.to_record(models.Department, payload))
        _log_event("department_created", id=department.id)
        return department

    def get(self, department_id: int) -> Optional[models.Department]:
        return self.repo.read_one(department_id)

    def list_page(
        self,
        page: int = 0,
        size: Optional[int] = None,
        sort: Optional[str] = None,
        filters: Optional[Sequence[str]] = None,
    ) -> Tuple[PageDescriptor, ResultPage]:
        descriptor = _descriptor(models.Department, DEPARTMENT_QUERY_FIELDS, page, size, sort, filters)
        return descriptor, self.repo.read_page(descriptor)

    def replace(self, department_id: int, payload: DepartmentCreate) -> Optional[models.Department]:
        if self.repo.read_one(department_id) is None:
            return None
        self._check_name_free(payload.name, department_id)
        department = self.repo.update(department_id, lambda d: mapper.apply_changes(d, payload, partial=False))
        _log_event("department_replaced", id=department_id)
        return department

    def update(self, department_id: int, payload: DepartmentUpdate) -> Optional[models.Department]:
        if self.repo.read_one(department_id) is None:
            return None
        if "name" in payload.model_fields_set:
            self._check_name_free(payload.name, department_id)
        department = self.repo.update(department_id, lambda d: mapper.apply_changes(d, payload, partial=True))
        _log_event("department_updated", id=department_id, fields=sorted(payload.model_fields_set))
        return department

    def delete(self, department_id: int) -> bool:
        """Delete a department; its students stay registered, detached."""
        deleted = self.repo.delete(department_id)
        if deleted:
            _log_event("department_deleted", id=department_id)
        return deleted

    def students_page(
        self,
        department_id: int,
        page: int = 0,
        size: Optional[int] = None,
        sort: Optional[str] = None,
        filters: Optional[Sequence[str]] = None,
    ) -> Optional[Tuple[PageDescriptor, ResultPage]]:
        """Page through one department's students; `None` if it is absent."""
        if self.repo.read_one(department_id) is None:
            return None
        scope = FilterSpec("department_id", "eq", department_id)
        return self.students.list_page(page, size, sort, filters, extra_filters=(scope,))
