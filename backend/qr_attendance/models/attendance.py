"""Attendance record model."""
from enum import Enum

from qr_attendance import db
from qr_attendance.models.base import BaseModel
from qr_attendance.utils.helpers import utcnow

class AttendanceStatus(Enum):
    """Outcome stored for a student in a class."""
    PRESENT = 'present'
    LATE = 'late'
    ABSENT = 'absent'
    EXCUSED = 'excused'

class AttendanceRecord(BaseModel):
    """One outcome per (student, class); fixed once written."""

    __tablename__ = 'attendance_records'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'class_id', name='uq_attendance_student_class'),
    )

    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    class_id = db.Column(db.Integer, db.ForeignKey('class_sessions.id'), nullable=False, index=True)
    status = db.Column(
        db.Enum(AttendanceStatus, values_callable=lambda statuses: [s.value for s in statuses]),
        nullable=False
    )
    marked_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    def __repr__(self):
        return f'<AttendanceRecord {self.student_id}-{self.class_id}>'
