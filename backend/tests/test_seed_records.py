from registry.services import StudentService
from scripts.seed_records import seed_students, student_payloads


def test_payloads_spread_across_departments():
    payloads = student_payloads(3, [7, 9])
    assert [p['department_id'] for p in payloads] == [7, 9, 7]
    assert payloads[0] == {'name': 'Sam 1', 'age': 18, 'email': 'sam1@mail.com', 'department_id': 7}
    assert student_payloads(1, [])[0]['department_id'] is None


def test_invalid_payloads_are_reported_and_skipped(session, capsys):
    payloads = [
        {'name': 'Sam', 'age': 25, 'email': 'sam@mail.com'},
        {'name': '', 'age': 0, 'email': 'nope'},
        {'name': 'Sam again', 'age': 30, 'email': 'SAM@mail.com'},
    ]
    created, skipped = seed_students(StudentService(session), payloads)
    assert (created, skipped) == (1, 2)
    out = capsys.readouterr().out
    assert "'name': 'must not be blank'" in out
    assert "'age'" in out and "'email'" in out
    assert 'already registered' in out
