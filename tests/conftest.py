"""Shared fixtures for the attendance engine tests."""
import base64
from datetime import timedelta
from types import SimpleNamespace

import pytest
from flask_jwt_extended import create_access_token

from attendance_engine import create_app, db
from attendance_engine.models import (
    AttendanceSession, ClassEnrollment, SchoolClass, User, UserRole
)
from attendance_engine.services.identity_service import FaceComparisonError, MatchResult
from attendance_engine.utils.helpers import utc_now

JPEG_BYTES = b'\xff\xd8\xff\xe0' + b'\x00' * 64
FACE_IMAGE = 'data:image/jpeg;base64,' + base64.b64encode(JPEG_BYTES).decode('ascii')


class FakeComparator:
    """Stands in for the face comparison HTTP service."""

    def __init__(self, matched=True, error=None):
        self.matched = matched
        self.error = error
        self.calls = []

    def compare(self, reference_key, image_bytes):
        self.calls.append((reference_key, image_bytes))
        if self.error:
            raise FaceComparisonError(self.error)
        return MatchResult(self.matched, {'similarity': 99.1 if self.matched else 12.0})


@pytest.fixture
def app():
    """Create test app."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def comparator(app):
    """Replace the HTTP comparator with a controllable fake."""
    fake = FakeComparator()
    app.extensions['face_comparator'] = fake
    return fake


def make_session(class_id, token, minutes=15, is_active=True, schedule_id=None):
    session = AttendanceSession(
        session_token=token,
        class_id=class_id,
        schedule_id=schedule_id,
        expires_at=utc_now() + timedelta(minutes=minutes),
        is_active=is_active
    )
    db.session.add(session)
    db.session.commit()
    return session


def make_student(email, enrollment_no=None, face_key='faces/ref.jpg'):
    student = User(
        email=email,
        full_name=email.split('@')[0].title(),
        enrollment_no=enrollment_no,
        role=UserRole.STUDENT,
        face_image_key=face_key
    )
    db.session.add(student)
    db.session.commit()
    return student


def enroll(student_id, class_id):
    db.session.add(ClassEnrollment(student_id=student_id, class_id=class_id))
    db.session.commit()


@pytest.fixture
def seeded(app):
    """Teacher, two students, one class and a few sessions."""
    teacher = User(email='teacher@test.edu', full_name='Teacher One', role=UserRole.TEACHER)
    db.session.add(teacher)
    db.session.commit()

    school_class = SchoolClass(subject_name='Algorithms', subject_code='CS301', teacher_id=teacher.id)
    db.session.add(school_class)
    db.session.commit()

    student = make_student('alice@test.edu', 'EN0001')
    other = make_student('bob@test.edu', 'EN0002')
    enroll(student.id, school_class.id)
    enroll(other.id, school_class.id)

    open_session = make_session(school_class.id, 'open-token')
    expired_session = make_session(school_class.id, 'expired-token', minutes=-5)
    closed_session = make_session(school_class.id, 'closed-token', is_active=False)

    return SimpleNamespace(
        teacher_id=teacher.id,
        student_id=student.id,
        other_id=other.id,
        class_id=school_class.id,
        open_session_id=open_session.id,
        expired_session_id=expired_session.id,
        closed_session_id=closed_session.id
    )


def auth_headers(user_id):
    token = create_access_token(identity=str(user_id))
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def student_headers(app, seeded):
    return auth_headers(seeded.student_id)


@pytest.fixture
def teacher_headers(app, seeded):
    return auth_headers(seeded.teacher_id)
