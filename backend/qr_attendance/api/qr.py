"""QR broadcast API endpoints for the teacher display."""
from flask import Blueprint, current_app, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from qr_attendance import db
from qr_attendance.errors import AttendanceError, ClassCancelled, NotBroadcasting
from qr_attendance.services.directory_service import DirectoryService
from qr_attendance.services.qr_service import QRService
from qr_attendance.services.session_manager import IssuedToken, QRSession, QRSessionManager
from qr_attendance.utils.decorators import is_admin, owns_course, require_class_owner, teacher_required
from qr_attendance.utils.helpers import (
    domain_error_response, error_response, isoformat, success_response
)

qr_bp = Blueprint('qr', __name__)

TRUTHY = {'1', 'true', 'yes'}

def get_sessions() -> QRSessionManager:
    return current_app.extensions['qr_sessions']

def token_payload(issued: IssuedToken, session: QRSession) -> dict:
    return {
        'token': issued.token,
        'issued_at': isoformat(issued.issued_at),
        'expires_at': isoformat(issued.issued_at + session.token_ttl),
        'next_rotation_at': isoformat(issued.issued_at + session.rotation_interval),
        'rotation_interval_seconds': session.rotation_interval.total_seconds()
    }

@qr_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='QR service is running')

@qr_bp.route('/sessions/<int:class_id>/start', methods=['POST'])
@jwt_required()
@teacher_required
def start_broadcast(class_id):
    """Start rotating QR codes for a class."""
    try:
        class_session = require_class_owner(class_id)
        if class_session.is_cancelled:
            raise ClassCancelled()

        session = get_sessions().start_broadcast(class_id, started_by=get_jwt_identity())

        data = session.to_dict()
        data['current'] = token_payload(session.current, session)
        return success_response(data=data, message="QR broadcast started", status_code=201)

    except AttendanceError as e:
        return domain_error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error starting QR broadcast for class %s", class_id)
        return error_response("Error starting QR broadcast", 500, 'InternalError')

@qr_bp.route('/sessions/<int:class_id>/stop', methods=['POST'])
@jwt_required()
@teacher_required
def stop_broadcast(class_id):
    """Stop the broadcast; outstanding codes stop working immediately."""
    try:
        require_class_owner(class_id)
        get_sessions().stop_broadcast(class_id)

        return success_response(data={'class_id': class_id}, message="QR broadcast stopped")

    except AttendanceError as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Error stopping QR broadcast for class %s", class_id)
        return error_response("Error stopping QR broadcast", 500, 'InternalError')

@qr_bp.route('/sessions/<int:class_id>/current', methods=['GET'])
@jwt_required()
@teacher_required
def current_token(class_id):
    """Current rotating token, polled by the teacher display."""
    try:
        require_class_owner(class_id)

        sessions = get_sessions()
        issued = sessions.current_token(class_id)
        session = sessions.get(class_id)
        if session is None:
            raise NotBroadcasting()

        data = token_payload(issued, session)
        if request.args.get('image', '').lower() in TRUTHY:
            data['qr_image'] = QRService.render_data_uri(issued.token)

        return success_response(data=data)

    except AttendanceError as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Error reading current QR token for class %s", class_id)
        return error_response("Error reading current QR token", 500, 'InternalError')

def visible_to_caller(session: QRSession) -> bool:
    """Admins see every broadcast; teachers see those of their own courses."""
    if is_admin():
        return True
    class_session = DirectoryService.get_class(session.class_id)
    return class_session is not None and owns_course(class_session.course_id)

@qr_bp.route('/sessions', methods=['GET'])
@jwt_required()
@teacher_required
def list_sessions():
    """Active broadcasts visible to the caller."""
    sessions = [session for session in get_sessions().active_sessions() if visible_to_caller(session)]

    return success_response(
        data={
            'sessions': [session.to_dict() for session in sessions],
            'count': len(sessions)
        }
    )
