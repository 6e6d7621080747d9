"""Test single attendance submissions."""
import json

import pytest

from attendance_engine import db
from attendance_engine.models import AttendanceRecord, AttendanceStatus, User
from attendance_engine.services.duplicate_guard import DuplicateGuard
from attendance_engine.services.submission_service import SubmissionService
from attendance_engine.utils.errors import (
    Conflict, InvalidInput, InvalidSession, NotFound, Unauthorized, Unavailable
)

from conftest import FACE_IMAGE

COORDINATES = {'latitude': 33.3152, 'longitude': 44.3661}


def submit(seeded, **overrides):
    payload = {
        'student_id': seeded.student_id,
        'session_id': 'open-token',
        'class_id': seeded.class_id,
        'coordinates': COORDINATES,
        'liveness_passed': True,
        'face_image': FACE_IMAGE,
    }
    payload.update(overrides)
    return SubmissionService().submit(**payload)


def record_count(student_id):
    return AttendanceRecord.query.filter_by(student_id=student_id).count()


def test_submit_persists_present_record(seeded, comparator):
    record = submit(seeded)

    assert record.id is not None
    assert record.session_id == seeded.open_session_id
    assert record.status == AttendanceStatus.PRESENT
    assert record.manual_entry is False
    assert record.synced is False
    assert record.liveness_passed is True
    assert record.coordinates == COORDINATES
    assert comparator.calls[0][0] == 'faces/ref.jpg'


@pytest.mark.parametrize('overrides', [
    {},
    {'session_id': None, 'face_image': None},
    {'coordinates': None},
])
def test_liveness_false_always_invalid_input(seeded, comparator, overrides):
    with pytest.raises(InvalidInput):
        submit(seeded, liveness_passed=False, **overrides)
    assert comparator.calls == []


def test_liveness_must_be_true_not_truthy(seeded, comparator):
    with pytest.raises(InvalidInput):
        submit(seeded, liveness_passed='true')


@pytest.mark.parametrize('field', ['session_id', 'class_id', 'coordinates', 'face_image'])
def test_missing_fields_rejected(seeded, comparator, field):
    with pytest.raises(InvalidInput):
        submit(seeded, **{field: None})


def test_bad_coordinates_rejected(seeded, comparator):
    with pytest.raises(InvalidInput):
        submit(seeded, coordinates={'latitude': 'north', 'longitude': 44.0})


def test_missing_reference_face_is_not_found(seeded, comparator):
    student = db.session.get(User, seeded.student_id)
    student.face_image_key = None
    db.session.commit()

    with pytest.raises(NotFound):
        submit(seeded)
    assert comparator.calls == []


def test_oversize_image_rejected_before_comparison(seeded, comparator):
    import base64
    big = base64.b64encode(b'\xff\xd8\xff' + b'\x00' * 4096).decode()

    with pytest.raises(InvalidInput):
        submit(seeded, face_image=big)
    assert comparator.calls == []


def test_face_mismatch_is_unauthorized(seeded, comparator):
    comparator.matched = False
    with pytest.raises(Unauthorized):
        submit(seeded)
    assert record_count(seeded.student_id) == 0


def test_comparator_outage_is_unavailable_not_mismatch(seeded, comparator):
    comparator.error = 'connection refused'
    with pytest.raises(Unavailable) as exc:
        submit(seeded)
    assert not isinstance(exc.value, Unauthorized)
    assert record_count(seeded.student_id) == 0


@pytest.mark.parametrize('token', ['expired-token', 'closed-token', 'unknown-token'])
def test_invalid_sessions_rejected(seeded, comparator, token):
    with pytest.raises(InvalidSession):
        submit(seeded, session_id=token)


def test_session_must_belong_to_class(seeded, comparator):
    with pytest.raises(InvalidSession):
        submit(seeded, class_id=seeded.class_id + 100)


def test_resubmission_is_conflict(seeded, comparator):
    submit(seeded)
    with pytest.raises(Conflict):
        submit(seeded)
    assert record_count(seeded.student_id) == 1


def test_unique_constraint_catches_race(seeded, comparator, monkeypatch):
    # Both requests pass the existence check before either has written
    monkeypatch.setattr(DuplicateGuard, 'check_and_reserve', classmethod(lambda cls, s, sid: None))

    outcomes = []
    for _ in range(2):
        try:
            submit(seeded)
            outcomes.append('persisted')
        except Conflict:
            outcomes.append('conflict')

    assert sorted(outcomes) == ['conflict', 'persisted']
    assert record_count(seeded.student_id) == 1


def test_other_students_can_mark_same_session(seeded, comparator):
    submit(seeded)
    submit(seeded, student_id=seeded.other_id)
    assert AttendanceRecord.query.filter_by(session_id=seeded.open_session_id).count() == 2


# API


def post_submission(client, headers, seeded, **overrides):
    payload = {
        'session_id': 'open-token',
        'class_id': seeded.class_id,
        'coordinates': COORDINATES,
        'liveness_passed': True,
        'face_image': FACE_IMAGE,
    }
    payload.update(overrides)
    return client.post('/api/attendance', json=payload, headers=headers)


def test_api_submit_success(client, seeded, comparator, student_headers):
    response = post_submission(client, student_headers, seeded)

    assert response.status_code == 201
    data = json.loads(response.data)
    assert data['error'] is False
    assert data['data']['status'] == 'present'
    assert data['data']['student_id'] == seeded.student_id


@pytest.mark.parametrize('overrides, status_code, kind', [
    ({'liveness_passed': False}, 400, 'InvalidInput'),
    ({'session_id': 'expired-token'}, 400, 'InvalidSession'),
])
def test_api_submit_errors(client, seeded, comparator, student_headers, overrides, status_code, kind):
    response = post_submission(client, student_headers, seeded, **overrides)

    assert response.status_code == status_code
    data = json.loads(response.data)
    assert data['error'] is True
    assert data['kind'] == kind


def test_api_face_mismatch_401(client, seeded, comparator, student_headers):
    comparator.matched = False
    response = post_submission(client, student_headers, seeded)
    assert response.status_code == 401
    assert json.loads(response.data)['kind'] == 'Unauthorized'


def test_api_outage_503_is_retryable(client, seeded, comparator, student_headers):
    comparator.error = 'timeout'
    response = post_submission(client, student_headers, seeded)
    data = json.loads(response.data)
    assert response.status_code == 503
    assert data['retryable'] is True


def test_api_duplicate_409(client, seeded, comparator, student_headers):
    assert post_submission(client, student_headers, seeded).status_code == 201
    response = post_submission(client, student_headers, seeded)
    data = json.loads(response.data)
    assert response.status_code == 409
    assert data['kind'] == 'Conflict'
    assert data['details']['session_id'] == seeded.open_session_id


def test_api_requires_token(client, seeded):
    response = client.post('/api/attendance', json={})
    assert response.status_code == 401


def test_api_teacher_cannot_submit(client, seeded, comparator, teacher_headers):
    response = post_submission(client, teacher_headers, seeded)
    assert response.status_code == 403
