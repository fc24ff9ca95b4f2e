"""Turns one scanned token into exactly one attendance outcome."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from qr_attendance.errors import (
    AlreadyMarked, ClassCancelled, ClassNotFound, ExpiredOrUnknownToken,
    NotEnrolled, Unauthorized, WindowClosed
)
from qr_attendance.models.attendance import AttendanceStatus
from qr_attendance.services.attendance_ledger import AttendanceLedger, InsertOutcome
from qr_attendance.services.directory_service import DirectoryService
from qr_attendance.services.session_manager import QRSessionManager
from qr_attendance.services.token_codec import TokenCodec
from qr_attendance.utils.helpers import isoformat, utcnow

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    AttendanceStatus.PRESENT: "Attendance marked as present",
    AttendanceStatus.LATE: "Attendance marked as late"
}


@dataclass(frozen=True)
class ScanResult:
    status: AttendanceStatus
    message: str
    class_id: int
    marked_at: datetime

    def to_dict(self) -> dict:
        return {
            'status': self.status.value,
            'message': self.message,
            'class_id': self.class_id,
            'marked_at': isoformat(self.marked_at)
        }


class ScanProcessor:
    """Validates a scan and writes its attendance record.

    Every failure is terminal for the attempt and raises an AttendanceError;
    nothing is written unless all checks pass. Collaborators are passed in
    explicitly, including the broadcast registry.
    """

    def __init__(self, codec: TokenCodec, sessions: QRSessionManager,
                 directory=DirectoryService, ledger=AttendanceLedger,
                 early_threshold: timedelta = timedelta(minutes=15),
                 present_threshold: timedelta = timedelta(minutes=10),
                 late_threshold: timedelta = timedelta(minutes=20),
                 class_timezone: str = 'UTC',
                 clock: Callable[[], datetime] = utcnow):
        if late_threshold < present_threshold:
            raise ValueError("Late threshold must not precede the present threshold")

        self.codec = codec
        self.sessions = sessions
        self.directory = directory
        self.ledger = ledger
        self.early_threshold = early_threshold
        self.present_threshold = present_threshold
        self.late_threshold = late_threshold
        self.class_timezone = class_timezone
        self.clock = clock

    def classify(self, elapsed: timedelta) -> AttendanceStatus:
        """Status band for the time elapsed since the scheduled start."""
        if elapsed < -self.early_threshold:
            raise WindowClosed("Attendance is not open yet for this class")
        if elapsed <= self.present_threshold:
            return AttendanceStatus.PRESENT
        if elapsed <= self.late_threshold:
            return AttendanceStatus.LATE
        raise WindowClosed()

    def scan_for_principal(self, token: str, principal: str) -> ScanResult:
        student_id = self.directory.resolve_student(principal)
        if student_id is None:
            raise Unauthorized("No student record for the signed-in account")
        return self.scan(token, student_id)

    def scan(self, token: str, student_id: int) -> ScanResult:
        payload = self.codec.decode(token)

        if not self.sessions.is_token_currently_valid(payload.class_id, payload.issued_at, payload.nonce):
            raise ExpiredOrUnknownToken()

        class_session = self.directory.get_class(payload.class_id)
        if class_session is None:
            raise ClassNotFound()
        if class_session.is_cancelled:
            raise ClassCancelled()

        if not self.directory.is_enrolled(student_id, class_session.course_id):
            raise NotEnrolled()

        now = self.clock()
        status = self.classify(now - class_session.starts_at(self.class_timezone))

        outcome = self.ledger.try_insert(student_id, payload.class_id, status, now)
        if outcome is InsertOutcome.ALREADY_EXISTS:
            raise AlreadyMarked()

        logger.info("Student %s marked %s for class %s", student_id, status.value, payload.class_id)
        return ScanResult(
            status=status,
            message=STATUS_MESSAGES[status],
            class_id=payload.class_id,
            marked_at=now
        )
