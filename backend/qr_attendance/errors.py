"""Domain errors raised by the attendance core.

Every error carries a stable ``kind`` that the API returns to the caller,
a human-readable message and the HTTP status it maps to.
"""


class AttendanceError(Exception):
    """Base class for all terminal outcomes of a scan or broadcast call."""

    kind = 'AttendanceError'
    status_code = 400
    default_message = 'Attendance request failed'

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            'error': True,
            'kind': self.kind,
            'message': self.message,
            'status_code': self.status_code
        }


class InvalidToken(AttendanceError):
    kind = 'InvalidToken'
    status_code = 400
    default_message = 'Invalid QR code'


class ExpiredOrUnknownToken(AttendanceError):
    kind = 'ExpiredOrUnknownToken'
    status_code = 410
    default_message = 'QR code has expired. Please scan the current code'


class ClassNotFound(AttendanceError):
    kind = 'ClassNotFound'
    status_code = 404
    default_message = 'Class not found'


class ClassCancelled(AttendanceError):
    kind = 'ClassCancelled'
    status_code = 409
    default_message = 'This class has been cancelled'


class NotEnrolled(AttendanceError):
    kind = 'NotEnrolled'
    status_code = 403
    default_message = 'You are not enrolled in this course'


class WindowClosed(AttendanceError):
    kind = 'WindowClosed'
    status_code = 403
    default_message = 'Attendance window has closed for this class'


class AlreadyMarked(AttendanceError):
    kind = 'AlreadyMarked'
    status_code = 409
    default_message = 'Attendance already marked for this class'


class AlreadyBroadcasting(AttendanceError):
    kind = 'AlreadyBroadcasting'
    status_code = 409
    default_message = 'A QR broadcast is already running for this class'


class NotBroadcasting(AttendanceError):
    kind = 'NotBroadcasting'
    status_code = 404
    default_message = 'No active QR broadcast for this class'


class Unauthorized(AttendanceError):
    kind = 'Unauthorized'
    status_code = 401
    default_message = 'Authentication required'


class Forbidden(AttendanceError):
    kind = 'Forbidden'
    status_code = 403
    default_message = 'You are not allowed to perform this action'


class ValidationError(AttendanceError):
    kind = 'ValidationError'
    status_code = 400
    default_message = 'Invalid request'
