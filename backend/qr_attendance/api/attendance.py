"""Attendance API endpoints: QR scan, counts and student history."""
from flask import Blueprint, current_app, request
from flask_jwt_extended import get_jwt_identity, jwt_required, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from flask_limiter.util import get_remote_address
from jwt.exceptions import PyJWTError

from qr_attendance import db, limiter
from qr_attendance.errors import AttendanceError, Unauthorized
from qr_attendance.services.attendance_ledger import AttendanceLedger
from qr_attendance.services.directory_service import DirectoryService
from qr_attendance.services.scan_processor import ScanProcessor
from qr_attendance.utils.decorators import require_class_owner, student_required, teacher_required
from qr_attendance.utils.helpers import (
    domain_error_response, error_response, isoformat, success_response
)
from qr_attendance.utils.validators import Validator

attendance_bp = Blueprint('attendance', __name__)

def get_scan_processor() -> ScanProcessor:
    return current_app.extensions['scan_processor']

def scan_rate_key() -> str:
    """Limit scans per signed-in account; a whole class shares one network address."""
    try:
        verify_jwt_in_request(optional=True)
    except (JWTExtendedException, PyJWTError):
        return get_remote_address()
    return get_jwt_identity() or get_remote_address()

def scan_rate_limit() -> str:
    return current_app.config.get('SCAN_RATE_LIMIT', '30 per minute')

@attendance_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Attendance service is running')

@attendance_bp.route('/scan', methods=['POST'])
@jwt_required()
@student_required
@limiter.limit(scan_rate_limit, key_func=scan_rate_key)
def scan():
    """Mark attendance from a scanned or typed QR token."""
    principal = get_jwt_identity()
    try:
        data = Validator.require_json(request.get_json(silent=True))
        Validator.validate_required_fields(data, ['token'])
        token = Validator.validate_token_string(data['token'])

        result = get_scan_processor().scan_for_principal(token, principal)

        return success_response(data=result.to_dict(), message=result.message)

    except AttendanceError as e:
        current_app.logger.info("Scan by %s rejected: %s", principal, e.kind)
        return domain_error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error processing scan for %s", principal)
        return error_response("Internal server error", 500, 'InternalError')

@attendance_bp.route('/count', methods=['GET'])
@jwt_required()
@teacher_required
def attendance_count():
    """Number of students marked present or late in a class."""
    try:
        class_id = Validator.parse_positive_int(request.args.get('class_id'), 'class_id')
        require_class_owner(class_id)

        return success_response(
            data={
                'class_id': class_id,
                'count': AttendanceLedger.count_attended(class_id)
            }
        )

    except AttendanceError as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Error counting attendance")
        return error_response("Failed to get attendance count", 500, 'InternalError')

@attendance_bp.route('/me', methods=['GET'])
@jwt_required()
@student_required
def my_attendance():
    """Signed-in student's attendance history with totals per status."""
    try:
        student_id = DirectoryService.resolve_student(get_jwt_identity())
        if student_id is None:
            raise Unauthorized("No student record for the signed-in account")

        records = AttendanceLedger.records_for_student(student_id)

        return success_response(
            data={
                'records': [
                    {
                        'id': record.id,
                        'class_id': record.class_id,
                        'course_code': record.class_session.course.code,
                        'date': record.class_session.date.isoformat(),
                        'status': record.status.value,
                        'marked_at': isoformat(record.marked_at),
                        'notes': record.notes
                    }
                    for record in records
                ],
                'summary': AttendanceLedger.summarize(records)
            }
        )

    except AttendanceError as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Error loading attendance history")
        return error_response("Failed to load attendance history", 500, 'InternalError')
