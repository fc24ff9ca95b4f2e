"""Test attendance endpoints."""
import json
from datetime import timedelta

from conftest import CLASS_START, TEACHER, OTHER_TEACHER
from qr_attendance.services.token_codec import MAX_TOKEN_LENGTH

ALICE = 'alice@school.edu'


def scan(client, headers, token):
    return client.post('/api/attendance/scan', json={'token': token}, headers=headers)


def current(sessions, class_id):
    return sessions.start_broadcast(class_id).current.token


def test_health_check(client):
    response = client.get('/api/attendance/health')
    assert response.status_code == 200


def test_scan_success(client, school, sessions, auth_headers):
    response = scan(client, auth_headers(ALICE), current(sessions, school.class_id))

    assert response.status_code == 200
    data = json.loads(response.data)
    assert data['error'] == False
    assert data['message'] == 'Attendance marked as present'
    assert data['data']['status'] == 'present'
    assert data['data']['class_id'] == school.class_id
    assert data['data']['marked_at'] == '2025-03-03T09:00:00Z'


def test_scan_late(client, school, sessions, auth_headers, clock):
    clock.set(CLASS_START + timedelta(minutes=15))

    response = scan(client, auth_headers(ALICE), current(sessions, school.class_id))

    assert response.status_code == 200
    assert json.loads(response.data)['data']['status'] == 'late'


def test_scan_strips_whitespace(client, school, sessions, auth_headers):
    token = current(sessions, school.class_id)

    response = scan(client, auth_headers(ALICE), f'  {token}\n')

    assert response.status_code == 200


def test_duplicate_scan(client, school, sessions, auth_headers):
    token = current(sessions, school.class_id)
    headers = auth_headers(ALICE)
    scan(client, headers, token)

    response = scan(client, headers, token)

    assert response.status_code == 409
    data = json.loads(response.data)
    assert data['error'] == True
    assert data['kind'] == 'AlreadyMarked'


def test_scan_invalid_token(client, school, auth_headers):
    response = scan(client, auth_headers(ALICE), 'definitely-not-a-token')

    assert response.status_code == 400
    assert json.loads(response.data)['kind'] == 'InvalidToken'


def test_scan_validation(client, school, auth_headers):
    headers = auth_headers(ALICE)

    response = client.post('/api/attendance/scan', json={}, headers=headers)
    assert response.status_code == 400
    assert json.loads(response.data)['kind'] == 'ValidationError'

    response = client.post('/api/attendance/scan', data='token', headers=headers)
    assert response.status_code == 400

    response = scan(client, headers, 42)
    assert response.status_code == 400


def test_scan_rejects_oversized_token(client, school, auth_headers):
    response = scan(client, auth_headers(ALICE), 'a' * (MAX_TOKEN_LENGTH + 1))

    assert response.status_code == 400
    assert json.loads(response.data)['kind'] == 'ValidationError'


def test_scan_expired_token(client, school, sessions, auth_headers, clock):
    token = current(sessions, school.class_id)
    clock.advance(seconds=20)

    response = scan(client, auth_headers(ALICE), token)

    assert response.status_code == 410
    assert json.loads(response.data)['kind'] == 'ExpiredOrUnknownToken'


def test_scan_window_closed(client, school, sessions, auth_headers, clock):
    clock.set(CLASS_START + timedelta(minutes=21))

    response = scan(client, auth_headers(ALICE), current(sessions, school.class_id))

    assert response.status_code == 403
    assert json.loads(response.data)['kind'] == 'WindowClosed'


def test_scan_not_enrolled(client, school, sessions, auth_headers):
    response = scan(client, auth_headers('bob@school.edu'), current(sessions, school.class_id))

    assert response.status_code == 403
    assert json.loads(response.data)['kind'] == 'NotEnrolled'


def test_scan_unknown_student(client, school, sessions, auth_headers):
    response = scan(client, auth_headers('stranger@school.edu'), current(sessions, school.class_id))

    assert response.status_code == 401
    assert json.loads(response.data)['kind'] == 'Unauthorized'


def test_scan_requires_token(client, school):
    response = client.post('/api/attendance/scan', json={'token': 'x'})

    assert response.status_code == 401


def test_scan_requires_student_role(client, school, sessions, auth_headers):
    token = current(sessions, school.class_id)

    response = scan(client, auth_headers(ALICE, 'teacher'), token)

    assert response.status_code == 403
    assert json.loads(response.data)['kind'] == 'Forbidden'
    assert client.get('/api/attendance/me', headers=auth_headers(TEACHER, 'teacher')).status_code == 403


def test_attendance_count(client, school, sessions, auth_headers):
    scan(client, auth_headers(ALICE), current(sessions, school.class_id))

    response = client.get(f'/api/attendance/count?class_id={school.class_id}',
                          headers=auth_headers(TEACHER, 'teacher'))

    assert response.status_code == 200
    assert json.loads(response.data)['data'] == {'class_id': school.class_id, 'count': 1}


def test_attendance_count_access(client, school, auth_headers):
    response = client.get(f'/api/attendance/count?class_id={school.class_id}',
                          headers=auth_headers(OTHER_TEACHER, 'teacher'))
    assert response.status_code == 403

    response = client.get('/api/attendance/count?class_id=abc',
                          headers=auth_headers(TEACHER, 'teacher'))
    assert response.status_code == 400

    response = client.get(f'/api/attendance/count?class_id={school.class_id}',
                          headers=auth_headers(ALICE))
    assert response.status_code == 403


def test_my_attendance(client, school, sessions, auth_headers):
    headers = auth_headers(ALICE)
    scan(client, headers, current(sessions, school.class_id))

    response = client.get('/api/attendance/me', headers=headers)

    assert response.status_code == 200
    data = json.loads(response.data)['data']
    assert len(data['records']) == 1
    assert data['records'][0]['course_code'] == 'CS101'
    assert data['records'][0]['date'] == '2025-03-03'
    assert data['records'][0]['status'] == 'present'
    assert data['summary'] == {'present': 1, 'late': 0, 'absent': 0, 'excused': 0, 'total': 1}


def test_my_attendance_unknown_student(client, school, auth_headers):
    response = client.get('/api/attendance/me', headers=auth_headers('stranger@school.edu'))

    assert response.status_code == 401
