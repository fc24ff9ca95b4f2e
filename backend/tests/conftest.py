"""Shared fixtures."""
from datetime import datetime, time, timedelta
from types import SimpleNamespace

import pytest
from flask_jwt_extended import create_access_token

from qr_attendance import create_app, db
from qr_attendance.models import ClassSession, Course, Enrollment, Student

CLASS_START = datetime(2025, 3, 3, 9, 0, 0)
TEACHER = 'teacher@school.edu'
OTHER_TEACHER = 'other.teacher@school.edu'


class FakeClock:
    """Controllable replacement for utcnow()."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, now: datetime) -> datetime:
        self.now = now
        return self.now


@pytest.fixture
def clock():
    return FakeClock(CLASS_START)


@pytest.fixture
def config_overrides():
    """Per-module hook for app configuration."""
    return {}


@pytest.fixture
def app(clock, config_overrides):
    """Create test app."""
    app = create_app('testing', clock=clock, config_overrides=config_overrides)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
    app.extensions['qr_sessions'].shutdown()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def sessions(app):
    return app.extensions['qr_sessions']


@pytest.fixture
def processor(app):
    return app.extensions['scan_processor']


@pytest.fixture
def school(app):
    """One course with a 9:00 class, an enrolled student and a few edge cases."""
    course = Course(code='CS101', title='Intro to Computing', teacher_principal=TEACHER)
    other_course = Course(code='MA201', title='Linear Algebra', teacher_principal=OTHER_TEACHER)
    db.session.add_all([course, other_course])
    db.session.flush()

    def meeting(course_id, **kwargs):
        return ClassSession(
            course_id=course_id,
            date=CLASS_START.date(),
            scheduled_start_time=CLASS_START.time(),
            scheduled_end_time=time(10, 30),
            **kwargs
        )

    class_session = meeting(course.id, room='A101')
    cancelled = meeting(course.id, is_cancelled=True)
    other_class = meeting(other_course.id)

    alice = Student(principal='alice@school.edu', name='Alice', student_number='S0001')
    bob = Student(principal='bob@school.edu', name='Bob', student_number='S0002')
    carol = Student(principal='carol@school.edu', name='Carol', student_number='S0003')
    db.session.add_all([class_session, cancelled, other_class, alice, bob, carol])
    db.session.flush()

    db.session.add_all([
        Enrollment(student_id=alice.id, course_id=course.id),
        Enrollment(student_id=bob.id, course_id=other_course.id),
        Enrollment(student_id=carol.id, course_id=course.id, is_active=False),
    ])
    db.session.commit()

    return SimpleNamespace(
        course_id=course.id,
        class_id=class_session.id,
        cancelled_class_id=cancelled.id,
        other_class_id=other_class.id,
        student_id=alice.id,
        outsider_id=bob.id,
        inactive_id=carol.id,
    )


@pytest.fixture
def auth_headers(app):
    """Bearer headers as issued by the identity provider."""
    def make(principal, role='student'):
        token = create_access_token(identity=principal, additional_claims={'role': role})
        return {'Authorization': f'Bearer {token}'}
    return make
