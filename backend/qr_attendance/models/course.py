"""Course and scheduled class meeting models."""
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from qr_attendance import db
from qr_attendance.models.base import BaseModel

class Course(BaseModel):
    """A course taught by one teacher."""

    __tablename__ = 'courses'

    code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)

    # Identity subject of the owning teacher, as asserted by the identity provider
    teacher_principal = db.Column(db.String(255), nullable=False, index=True)

    # Relationships
    classes = db.relationship('ClassSession', backref='course', lazy='dynamic')
    enrollments = db.relationship('Enrollment', backref='course', lazy='dynamic')

    def __repr__(self):
        return f'<Course {self.code}>'

class ClassSession(BaseModel):
    """One scheduled meeting of a course. Read-only to the attendance core."""

    __tablename__ = 'class_sessions'

    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    scheduled_start_time = db.Column(db.Time, nullable=False)
    scheduled_end_time = db.Column(db.Time, nullable=False)
    is_cancelled = db.Column(db.Boolean, default=False, nullable=False)
    room = db.Column(db.String(50), nullable=True)

    # Relationships
    attendance_records = db.relationship('AttendanceRecord', backref='class_session', lazy='dynamic')

    def starts_at(self, timezone_name: str = 'UTC') -> datetime:
        """Scheduled start as a naive UTC datetime.

        Scheduled times are wall-clock times of the school's timezone.
        """
        local = datetime.combine(self.date, self.scheduled_start_time).replace(tzinfo=ZoneInfo(timezone_name))
        return local.astimezone(timezone.utc).replace(tzinfo=None)

    def __repr__(self):
        return f'<ClassSession {self.course_id} {self.date}>'
