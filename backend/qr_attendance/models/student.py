"""Student identity and enrollment models."""
from qr_attendance import db
from qr_attendance.models.base import BaseModel

class Student(BaseModel):
    """Student known to the directory."""

    __tablename__ = 'students'

    # Identity subject from the identity provider (JWT ``sub``)
    principal = db.Column(db.String(255), unique=True, nullable=False, index=True)
    student_number = db.Column(db.String(50), unique=True, nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)

    # Relationships
    enrollments = db.relationship('Enrollment', backref='student', lazy='dynamic')
    attendance_records = db.relationship('AttendanceRecord', backref='student', lazy='dynamic')

    def __repr__(self) -> str:
        return f'<Student {self.principal}>'

class Enrollment(BaseModel):
    """Membership of a student in a course."""

    __tablename__ = 'student_enrollments'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'course_id', name='uq_enrollment_student_course'),
    )

    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    def __repr__(self):
        return f'<Enrollment {self.student_id}-{self.course_id}>'
