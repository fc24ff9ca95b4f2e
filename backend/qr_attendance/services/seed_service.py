"""Database seeding service for local demos."""
from datetime import timedelta

from qr_attendance import db
from qr_attendance.models.course import ClassSession, Course
from qr_attendance.models.student import Enrollment, Student
from qr_attendance.utils.helpers import utcnow

class SeedService:
    """Service to seed the database with a runnable demo class."""

    @staticmethod
    def seed_demo(teacher_principal: str = 'teacher@school.edu') -> dict:
        """Create a course, a class starting now and two students (one enrolled)."""
        course = Course.query.filter_by(code='DEMO101').first()
        if course is None:
            course = Course(code='DEMO101', title='Demo Course', teacher_principal=teacher_principal)
            db.session.add(course)
            db.session.flush()

        now = utcnow().replace(second=0, microsecond=0)
        class_session = ClassSession(
            course_id=course.id,
            date=now.date(),
            scheduled_start_time=now.time(),
            scheduled_end_time=(now + timedelta(hours=1)).time(),
            room='A101'
        )
        db.session.add(class_session)

        students = []
        for number, (principal, name) in enumerate([
            ('student1@school.edu', 'Enrolled Student'),
            ('student2@school.edu', 'Visiting Student'),
        ], start=1):
            student = Student.query.filter_by(principal=principal).first()
            if student is None:
                student = Student(principal=principal, name=name, email=principal,
                                  student_number=f'S{number:04d}')
                db.session.add(student)
                db.session.flush()
            students.append(student)

        if not Enrollment.query.filter_by(student_id=students[0].id, course_id=course.id).first():
            db.session.add(Enrollment(student_id=students[0].id, course_id=course.id))

        db.session.commit()

        return {
            'course_id': course.id,
            'class_id': class_session.id,
            'teacher': teacher_principal,
            'students': [student.principal for student in students]
        }
