from registry.config import settings


def test_create_read_delete_round_trip(client):
    r = client.post('/students', json={'name': 'Sam', 'age': 25, 'email': 'sam@mail.com'})
    assert r.status_code == 201
    created = r.json()
    assert isinstance(created['id'], int)
    assert {k: created[k] for k in ('name', 'age', 'email')} == {'name': 'Sam', 'age': 25, 'email': 'sam@mail.com'}
    assert r.headers['Location'] == f"/students/{created['id']}"

    got = client.get(f"/students/{created['id']}")
    assert got.status_code == 200
    assert got.json() == created

    d = client.delete(f"/students/{created['id']}")
    assert d.status_code == 204
    assert d.content == b''

    missing = client.get(f"/students/{created['id']}")
    assert missing.status_code == 404
    body = missing.json()
    assert body['status'] == 404
    assert body['error'] == 'Not Found'
    assert body['path'] == f"/students/{created['id']}"


def test_response_hides_internal_fields(make_student):
    created = make_student()
    assert set(created) == {'id', 'name', 'age', 'email', 'department_id'}


def test_client_supplied_id_is_ignored(client):
    r = client.post('/students', json={'id': 999, 'name': 'Sam', 'age': 25, 'email': 'sam@mail.com'})
    assert r.status_code == 201
    assert r.json()['id'] != 999


def test_validation_reports_every_field(client):
    r = client.post('/students', json={'name': '   ', 'age': 0, 'email': 'not-an-email'})
    assert r.status_code == 400
    errors = r.json()['errors']
    assert set(errors) == {'name', 'age', 'email'}
    assert errors['name'] == 'must not be blank'
    assert 'greater than or equal to 1' in errors['age']


def test_missing_and_null_fields(client):
    r = client.post('/students', json={'name': None})
    assert r.status_code == 400
    errors = r.json()['errors']
    assert errors['name'] == 'must not be null'
    assert errors['age'] == 'Field required'
    assert errors['email'] == 'Field required'


def test_duplicate_email_conflicts(client, make_student):
    make_student(email='sam@mail.com')
    r = client.post('/students', json={'name': 'Other Sam', 'age': 30, 'email': 'SAM@mail.com'})
    assert r.status_code == 409
    assert 'already registered' in r.json()['message']


def test_unknown_department_is_a_field_violation(client):
    r = client.post('/students', json={'name': 'Sam', 'age': 25, 'email': 'sam@mail.com', 'department_id': 42})
    assert r.status_code == 400
    assert r.json()['errors'] == {'department_id': 'department 42 does not exist'}


def test_paging_metadata(client, make_student):
    for i in range(5):
        make_student(name=f'Student {i}', age=20 + i, email=f's{i}@mail.com')

    first = client.get('/students', params={'size': 2}).json()
    assert len(first['items']) == 2
    assert first['total_elements'] == 5
    assert first['total_pages'] == 3
    assert first['has_next'] is True
    assert first['has_previous'] is False

    last = client.get('/students', params={'size': 2, 'page': 2}).json()
    assert len(last['items']) == 1
    assert last['has_next'] is False
    assert last['has_previous'] is True

    beyond = client.get('/students', params={'size': 2, 'page': 7}).json()
    assert beyond['items'] == []
    assert beyond['total_elements'] == 5


def test_pages_cover_collection_without_overlap(client, make_student):
    for i in range(7):
        make_student(name=f'Student {i}', email=f's{i}@mail.com')
    seen = []
    for page in range(3):
        body = client.get('/students', params={'size': 3, 'page': page}).json()
        assert len(body['items']) <= 3
        seen.extend(item['id'] for item in body['items'])
    assert len(seen) == 7
    assert len(set(seen)) == 7


def test_sort_and_filter_compose(client, make_student):
    for i, age in enumerate([40, 19, 33, 27, 52]):
        make_student(name=f'Student {i}', age=age, email=f's{i}@mail.com')

    r = client.get('/students', params={'sort': 'age,desc', 'filter': 'age:gte:27', 'size': 2})
    assert r.status_code == 200
    body = r.json()
    assert [s['age'] for s in body['items']] == [52, 40]
    assert body['total_elements'] == 4
    assert body['sort'] == 'age,desc'
    assert body['filters'] == ['age:gte:27']

    second = client.get('/students', params={'sort': 'age,desc', 'filter': 'age:gte:27', 'size': 2, 'page': 1}).json()
    assert [s['age'] for s in second['items']] == [33, 27]


def test_repeated_filters_and_text_match(client, make_student):
    make_student(name='Samantha', age=22, email='samantha@mail.com')
    make_student(name='Sam', age=35, email='sam@mail.com')
    make_student(name='Alex', age=35, email='alex@mail.com')
    r = client.get('/students', params=[('filter', 'name:contains:SAM'), ('filter', 'age:gt:30')])
    assert r.status_code == 200
    assert [s['name'] for s in r.json()['items']] == ['Sam']


def test_bad_query_parameters(client):
    r = client.get('/students', params={'sort': 'salary'})
    assert r.status_code == 400
    assert "unknown field 'salary'" in r.json()['message']

    assert client.get('/students', params={'filter': 'age:between:1'}).status_code == 400
    assert client.get('/students', params={'filter': 'age:gt:abc'}).status_code == 400
    assert client.get('/students', params={'filter': 'nickname:eq:x'}).status_code == 400

    r = client.get('/students', params={'page': -1, 'size': 0})
    assert r.status_code == 400
    assert set(r.json()['errors']) == {'page', 'size'}

    assert client.get('/students', params={'size': settings.MAX_PAGE_SIZE + 1}).status_code == 400


def test_empty_collection_status(client, monkeypatch):
    r = client.get('/students')
    assert r.status_code == 200
    assert r.json()['items'] == []
    assert r.json()['total_pages'] == 0

    monkeypatch.setattr(settings, 'EMPTY_PAGE_STATUS', 204)
    r = client.get('/students')
    assert r.status_code == 204
    assert r.content == b''


def test_patch_changes_only_supplied_fields(client, make_student):
    created = make_student()
    r = client.patch(f"/students/{created['id']}", json={'age': 26})
    assert r.status_code == 200
    assert r.json() == {**created, 'age': 26}

    r = client.patch(f"/students/{created['id']}", json={'name': None})
    assert r.status_code == 400
    assert r.json()['errors'] == {'name': 'must not be null'}


def test_put_requires_every_field(client, make_student):
    created = make_student()
    r = client.put(f"/students/{created['id']}", json={'name': 'Samuel'})
    assert r.status_code == 400
    assert set(r.json()['errors']) == {'age', 'email'}

    r = client.put(f"/students/{created['id']}", json={'name': 'Samuel', 'age': 30, 'email': 'samuel@mail.com'})
    assert r.status_code == 200
    assert r.json() == {'id': created['id'], 'name': 'Samuel', 'age': 30, 'email': 'samuel@mail.com', 'department_id': None}


def test_absent_student_is_not_found_for_every_operation(client):
    assert client.get('/students/12345').status_code == 404
    assert client.patch('/students/12345', json={'age': 30}).status_code == 404
    assert client.put('/students/12345', json={'name': 'X', 'age': 30, 'email': 'x@mail.com'}).status_code == 404
    assert client.delete('/students/12345').status_code == 404


def test_request_id_is_echoed(client):
    r = client.get('/health', headers={'X-Request-ID': 'abc123'})
    assert r.status_code == 200
    assert r.headers['X-Request-ID'] == 'abc123'
    assert client.get('/health').headers['X-Request-ID']


def test_ids_beyond_integer_range_are_not_found(client):
    huge = '99999999999999999999999'
    assert client.get(f'/students/{huge}').status_code == 404
    assert client.patch(f'/students/{huge}', json={'age': 30}).status_code == 404
    assert client.put(f'/students/{huge}', json={'name': 'X', 'age': 30, 'email': 'x@mail.com'}).status_code == 404
    assert client.delete(f'/students/{huge}').status_code == 404


def test_department_id_beyond_integer_range_is_a_violation(client):
    r = client.post('/students', json={'name': 'Sam', 'age': 25, 'email': 'sam@mail.com', 'department_id': 2**63})
    assert r.status_code == 400
    assert set(r.json()['errors']) == {'department_id'}


def test_oversized_page_and_filter_values_are_bad_requests(client, make_student):
    make_student()
    r = client.get('/students', params={'page': 10**19, 'size': 10})
    assert r.status_code == 400
    assert r.json()['message'] == 'page index is out of range'

    r = client.get('/students', params={'filter': 'age:eq:99999999999999999999999'})
    assert r.status_code == 400
    assert 'out of range' in r.json()['message']


def test_email_is_stored_as_given(client):
    r = client.post('/students', json={'name': 'Sam', 'age': 25, 'email': 'Sam@Mail.COM'})
    assert r.status_code == 201
    assert r.json()['email'] == 'Sam@Mail.COM'
    assert client.get(f"/students/{r.json()['id']}").json()['email'] == 'Sam@Mail.COM'

    r = client.patch(f"/students/{r.json()['id']}", json={'email': 'Samuel@Example.ORG'})
    assert r.json()['email'] == 'Samuel@Example.ORG'

    r = client.get('/students', params={'filter': 'email:eq:Samuel@Example.ORG'})
    assert r.json()['total_elements'] == 1
