"""CLI script to seed demo departments and students into the backend DB.
Usage: python scripts/seed_records.py [--students N]
"""
import sys
import argparse
import pathlib
# Ensure `backend/` is on sys.path so `registry` package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from registry.database import engine, create_db_and_tables
from registry import services
from registry.errors import RegistryError
from registry.schemas import DepartmentCreate, StudentCreate
from registry.validation import collect_violations

DEPARTMENTS = [
    ("Computer Science", "Software, systems and theory"),
    ("Mathematics", "Pure and applied mathematics"),
    ("Physics", None),
]

FIRST_NAMES = ["Sam", "Alex", "Jordan", "Taylor", "Riley", "Casey", "Morgan", "Jamie"]


def student_payloads(count, dept_ids):
    """Raw demo student payloads, spread across `dept_ids`."""
    payloads = []
    for i in range(count):
        first = FIRST_NAMES[i % len(FIRST_NAMES)]
        payloads.append({
            'name': f'{first} {i + 1}',
            'age': 18 + (i % 10),
            'email': f'{first.lower()}{i + 1}@mail.com',
            'department_id': dept_ids[i % len(dept_ids)] if dept_ids else None,
        })
    return payloads


def seed_students(student_svc, payloads):
    """Create a student per payload and return `(created, skipped)`.

    Each payload is checked first and all of its violations are printed
    together; invalid or conflicting payloads are skipped.
    """
    created = 0
    skipped = 0
    for payload in payloads:
        violations = collect_violations(StudentCreate, payload)
        if violations:
            print(f'Skipped {payload.get("email")}: {violations}')
            skipped += 1
            continue
        try:
            student_svc.create(StudentCreate.model_validate(payload))
            created += 1
        except RegistryError as e:
            print(f'Skipped {payload["email"]}: {e}')
            skipped += 1
    return created, skipped


def main(students: int = 8):
    """Create the demo departments and `students` demo students.

    Records that already exist (same department name or student email)
    are skipped, so the script can be re-run. Results are printed to
    stdout for a quick CLI feedback loop.
    """
    create_db_and_tables()
    with Session(engine) as session:
        dept_svc = services.DepartmentService(session)
        student_svc = services.StudentService(session)
        dept_ids = []
        for name, description in DEPARTMENTS:
            existing = dept_svc.repo.get_by_name(name)
            if existing:
                print(f'Department exists: {name}')
                dept_ids.append(existing.id)
                continue
            d = dept_svc.create(DepartmentCreate(name=name, description=description))
            print(f'Created department {d.id}: {name}')
            dept_ids.append(d.id)
        created, skipped = seed_students(student_svc, student_payloads(students, dept_ids))
        print(f'Total created students: {created}, skipped {skipped}')

if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--students', type=int, default=8, help='Number of demo students to create')
    args = parser.parse_args()
    main(students=args.students)
