"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the campus registry.
Controllers are intentionally thin: they accept requests, delegate to
services, map records to response shapes and turn "not found" results
into 404 responses.

Endpoints implemented:
- POST   /students
- GET    /students
- GET    /students/{student_id}
- PUT    /students/{student_id}
- PATCH  /students/{student_id}
- DELETE /students/{student_id}
- POST   /departments
- GET    /departments
- GET    /departments/{department_id}
- PUT    /departments/{department_id}
- PATCH  /departments/{department_id}
- DELETE /departments/{department_id}
- GET    /departments/{department_id}/students
- GET    /health
"""

import json
import logging
import time
import uuid
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session

from . import mapper, services
from .config import settings
from .database import create_db_and_tables, get_session
from .errors import register_exception_handlers
from .schemas import (
    DepartmentCreate,
    DepartmentOut,
    DepartmentUpdate,
    ErrorOut,
    PageOut,
    StudentOut,
    StudentReplace,
    StudentCreate,
    StudentUpdate,
)

app = FastAPI(title="Campus Registry API")
logger = logging.getLogger("registry.api")
if not logging.getLogger().handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

register_exception_handlers(app)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()

ERROR_RESPONSES = {
    400: {"model": ErrorOut},
    404: {"model": ErrorOut},
    409: {"model": ErrorOut},
}


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
                "client": request.client.host if request.client else "unknown",
            },
            ensure_ascii=True,
        ),
    )
    return response


def _not_found(kind: str, record_id: int) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{kind} {record_id} not found")


def _page_or_empty(items: list, result, descriptor):
    """Return the page body, or a bare 204 when configured for empty reads."""
    if result.total == 0 and settings.EMPTY_PAGE_STATUS == 204:
        return Response(status_code=204)
    return mapper.to_page(items, result, descriptor)


def _department_out(svc: services.DepartmentService, departments) -> List[DepartmentOut]:
    counts = svc.student_counts(departments)
    return [mapper.to_response(DepartmentOut, d, student_count=counts.get(d.id, 0)) for d in departments]


@app.post('/students', status_code=201, response_model=StudentOut, responses=ERROR_RESPONSES)
def create_student(payload: StudentCreate, response: Response, db: Session = Depends(get_session)):
    """Register a student and return it with its assigned id.

    The `Location` header points at the new resource.
    """
    student = services.StudentService(db).create(payload)
    response.headers["Location"] = f"/students/{student.id}"
    return mapper.to_response(StudentOut, student)


@app.get('/students', response_model=PageOut[StudentOut], responses=ERROR_RESPONSES)
def list_students(
    page: int = Query(0, ge=0),
    size: Optional[int] = Query(None, ge=1, le=settings.MAX_PAGE_SIZE),
    sort: Optional[str] = Query(None, description="field or field,asc|desc"),
    filters: Optional[List[str]] = Query(None, alias="filter", description="field:operator:value"),
    db: Session = Depends(get_session),
):
    """List students one page at a time.

    Filters narrow the collection before paging; without `sort` the order
    is by id.
    """
    descriptor, result = services.StudentService(db).list_page(page, size, sort, filters)
    return _page_or_empty(mapper.to_responses(StudentOut, result.items), result, descriptor)


@app.get('/students/{student_id}', response_model=StudentOut, responses=ERROR_RESPONSES)
def get_student(student_id: int, db: Session = Depends(get_session)):
    student = services.StudentService(db).get(student_id)
    if student is None:
        raise _not_found("student", student_id)
    return mapper.to_response(StudentOut, student)


@app.put('/students/{student_id}', response_model=StudentOut, responses=ERROR_RESPONSES)
def replace_student(student_id: int, payload: StudentReplace, db: Session = Depends(get_session)):
    """Replace every writable field of a student."""
    student = services.StudentService(db).replace(student_id, payload)
    if student is None:
        raise _not_found("student", student_id)
    return mapper.to_response(StudentOut, student)


@app.patch('/students/{student_id}', response_model=StudentOut, responses=ERROR_RESPONSES)
def update_student(student_id: int, payload: StudentUpdate, db: Session = Depends(get_session)):
    """Change only the fields present in the request body."""
    student = services.StudentService(db).update(student_id, payload)
    if student is None:
        raise _not_found("student", student_id)
    return mapper.to_response(StudentOut, student)


@app.delete('/students/{student_id}', status_code=204, responses=ERROR_RESPONSES)
def delete_student(student_id: int, db: Session = Depends(get_session)):
    if not services.StudentService(db).delete(student_id):
        raise _not_found("student", student_id)
    return Response(status_code=204)


@app.post('/departments', status_code=201, response_model=DepartmentOut, responses=ERROR_RESPONSES)
def create_department(payload: DepartmentCreate, response: Response, db: Session = Depends(get_session)):
    department = services.DepartmentService(db).create(payload)
    response.headers["Location"] = f"/departments/{department.id}"
    return mapper.to_response(DepartmentOut, department, student_count=0)


@app.get('/departments', response_model=PageOut[DepartmentOut], responses=ERROR_RESPONSES)
def list_departments(
    page: int = Query(0, ge=0),
    size: Optional[int] = Query(None, ge=1, le=settings.MAX_PAGE_SIZE),
    sort: Optional[str] = Query(None, description="field or field,asc|desc"),
    filters: Optional[List[str]] = Query(None, alias="filter", description="field:operator:value"),
    db: Session = Depends(get_session),
):
    svc = services.DepartmentService(db)
    descriptor, result = svc.list_page(page, size, sort, filters)
    return _page_or_empty(_department_out(svc, result.items), result, descriptor)


@app.get('/departments/{department_id}', response_model=DepartmentOut, responses=ERROR_RESPONSES)
def get_department(department_id: int, db: Session = Depends(get_session)):
    svc = services.DepartmentService(db)
    department = svc.get(department_id)
    if department is None:
        raise _not_found("department", department_id)
    return _department_out(svc, [department])[0]


@app.put('/departments/{department_id}', response_model=DepartmentOut, responses=ERROR_RESPONSES)
def replace_department(department_id: int, payload: DepartmentCreate, db: Session = Depends(get_session)):
    svc = services.DepartmentService(db)
    department = svc.replace(department_id, payload)
    if department is None:
        raise _not_found("department", department_id)
    return _department_out(svc, [department])[0]


@app.patch('/departments/{department_id}', response_model=DepartmentOut, responses=ERROR_RESPONSES)
def update_department(department_id: int, payload: DepartmentUpdate, db: Session = Depends(get_session)):
    svc = services.DepartmentService(db)
    department = svc.update(department_id, payload)
    if department is None:
        raise _not_found("department", department_id)
    return _department_out(svc, [department])[0]


@app.delete('/departments/{department_id}', status_code=204, responses=ERROR_RESPONSES)
def delete_department(department_id: int, db: Session = Depends(get_session)):
    """Delete a department; its students remain, with no department."""
    if not services.DepartmentService(db).delete(department_id):
        raise _not_found("department", department_id)
    return Response(status_code=204)


@app.get('/departments/{department_id}/students', response_model=PageOut[StudentOut], responses=ERROR_RESPONSES)
def list_department_students(
    department_id: int,
    page: int = Query(0, ge=0),
    size: Optional[int] = Query(None, ge=1, le=settings.MAX_PAGE_SIZE),
    sort: Optional[str] = Query(None, description="field or field,asc|desc"),
    filters: Optional[List[str]] = Query(None, alias="filter", description="field:operator:value"),
    db: Session = Depends(get_session),
):
    """Page through the students assigned to one department."""
    found = services.DepartmentService(db).students_page(department_id, page, size, sort, filters)
    if found is None:
        raise _not_found("department", department_id)
    descriptor, result = found
    return _page_or_empty(mapper.to_responses(StudentOut, result.items), result, descriptor)


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
