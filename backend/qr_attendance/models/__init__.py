"""Models package with all models."""
from .base import BaseModel
from .course import Course, ClassSession
from .student import Student, Enrollment
from .attendance import AttendanceRecord, AttendanceStatus

__all__ = [
    'BaseModel', 'Course', 'ClassSession',
    'Student', 'Enrollment',
    'AttendanceRecord', 'AttendanceStatus'
]
