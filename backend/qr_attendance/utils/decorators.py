"""Custom decorators for authorization."""
from functools import wraps

from flask import current_app
from flask_jwt_extended import get_jwt, get_jwt_identity

from qr_attendance.errors import ClassNotFound, Forbidden
from qr_attendance.services.directory_service import DirectoryService
from qr_attendance.utils.helpers import error_response

STUDENT = 'student'
TEACHER = 'teacher'
ADMIN = 'admin'

def current_role() -> str:
    """Role claim of the authenticated caller, defaulting to student."""
    claim = current_app.config.get('JWT_ROLE_CLAIM', 'role')
    return get_jwt().get(claim) or STUDENT

def is_admin() -> bool:
    return current_role() == ADMIN

def student_required(f):
    """Decorator to require student role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_role() != STUDENT:
            return error_response("Student access required", 403, 'Forbidden')

        return f(*args, **kwargs)
    return decorated_function

def teacher_required(f):
    """Decorator to require teacher role or higher."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_role() not in (TEACHER, ADMIN):
            return error_response("Teacher access required", 403, 'Forbidden')

        return f(*args, **kwargs)
    return decorated_function

def require_class_owner(class_id: int):
    """Load a class the caller may manage: the course teacher or an admin."""
    class_session = DirectoryService.get_class(class_id)
    if class_session is None:
        raise ClassNotFound()

    if not is_admin() and not owns_course(class_session.course_id):
        raise Forbidden("You can only manage attendance for your own classes")

    return class_session

def owns_course(course_id: int) -> bool:
    """Whether the caller is the teacher of the course."""
    course = DirectoryService.get_course(course_id)
    return course is not None and course.teacher_principal == get_jwt_identity()
