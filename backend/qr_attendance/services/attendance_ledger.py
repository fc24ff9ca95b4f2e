"""Durable attendance records with database-enforced uniqueness."""
import logging
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List

from sqlalchemy.exc import IntegrityError

from qr_attendance import db
from qr_attendance.models.attendance import AttendanceRecord, AttendanceStatus

logger = logging.getLogger(__name__)

class InsertOutcome(Enum):
    CREATED = 'created'
    ALREADY_EXISTS = 'already_exists'

class AttendanceLedger:
    """Attendance record store."""

    @staticmethod
    def try_insert(student_id: int, class_id: int, status: AttendanceStatus,
                   marked_at: datetime, notes: str = None) -> InsertOutcome:
        """Insert one record atomically.

        The unique constraint on (student_id, class_id) decides between
        concurrent writers; the losing INSERT fails and is rolled back.
        """
        record = AttendanceRecord(
            student_id=student_id,
            class_id=class_id,
            status=status,
            marked_at=marked_at,
            notes=notes
        )
        db.session.add(record)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.debug("Attendance for student %s in class %s already exists", student_id, class_id)
            return InsertOutcome.ALREADY_EXISTS

        return InsertOutcome.CREATED

    @staticmethod
    def count_attended(class_id: int) -> int:
        """Number of present or late records for a class."""
        return db.session.execute(
            db.select(db.func.count(AttendanceRecord.id)).where(
                AttendanceRecord.class_id == class_id,
                AttendanceRecord.status.in_([AttendanceStatus.PRESENT, AttendanceStatus.LATE])
            )
        ).scalar_one()

    @staticmethod
    def records_for_student(student_id: int) -> List[AttendanceRecord]:
        """Student's records, most recent first."""
        return list(db.session.execute(
            db.select(AttendanceRecord)
            .filter_by(student_id=student_id)
            .order_by(AttendanceRecord.marked_at.desc())
        ).scalars())

    @staticmethod
    def summarize(records: Iterable[AttendanceRecord]) -> Dict[str, int]:
        summary = {status.value: 0 for status in AttendanceStatus}
        for record in records:
            summary[record.status.value] += 1
        summary['total'] = sum(summary.values())
        return summary
