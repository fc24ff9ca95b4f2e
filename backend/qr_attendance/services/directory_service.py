"""Lookups of students, classes and enrollments."""
from typing import Optional

from qr_attendance import db
from qr_attendance.models.course import ClassSession, Course
from qr_attendance.models.student import Enrollment, Student

class DirectoryService:
    """Read-only view of the school directory."""

    @staticmethod
    def resolve_student(principal: str) -> Optional[int]:
        """Student id for an authenticated principal, or None."""
        if not principal:
            return None
        student_id = db.session.execute(
            db.select(Student.id).filter_by(principal=str(principal))
        ).scalar_one_or_none()
        return student_id

    @staticmethod
    def is_enrolled(student_id: int, course_id: int) -> bool:
        """Check for an active enrollment."""
        enrollment = db.session.execute(
            db.select(Enrollment.id).filter_by(
                student_id=student_id,
                course_id=course_id,
                is_active=True
            )
        ).first()
        return enrollment is not None

    @staticmethod
    def get_class(class_id: int) -> Optional[ClassSession]:
        return db.session.get(ClassSession, class_id)

    @staticmethod
    def get_course(course_id: int) -> Optional[Course]:
        return db.session.get(Course, course_id)
