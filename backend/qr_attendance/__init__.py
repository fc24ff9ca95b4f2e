"""QR Attendance - Application Factory."""
import atexit
import logging
import os
from datetime import datetime, timedelta
from typing import Callable

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)

def create_app(config_name: str = None, clock: Callable[[], datetime] = None,
               config_overrides: dict = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    # Setup logging
    setup_logging(app)

    # Broadcast registry and scan pipeline
    init_attendance_core(app, clock)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Add CLI commands
    register_commands(app)

    # Add health check
    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'QR Attendance',
            'version': '1.0.0'
        })

    return app

def init_attendance_core(app: Flask, clock: Callable[[], datetime] = None) -> None:
    """Build the token codec, broadcast registry and scan processor for this app."""
    from qr_attendance.services.token_codec import TokenCodec
    from qr_attendance.services.session_manager import QRSessionManager
    from qr_attendance.services.scan_processor import ScanProcessor
    from qr_attendance.utils.helpers import utcnow

    clock = clock or utcnow
    codec = TokenCodec(app.config['QR_TOKEN_SECRET'])

    sessions = QRSessionManager(
        codec,
        rotation_interval=app.config['QR_ROTATION_INTERVAL_SECONDS'],
        token_ttl=app.config['QR_TOKEN_TTL_SECONDS'],
        idle_timeout=app.config['QR_IDLE_TIMEOUT_SECONDS'],
        clock=clock,
        auto_rotate=app.config['QR_AUTO_ROTATE']
    )

    app.extensions['qr_sessions'] = sessions
    atexit.register(sessions.shutdown)
    app.extensions['scan_processor'] = ScanProcessor(
        codec,
        sessions,
        early_threshold=timedelta(minutes=app.config['EARLY_SCAN_MINUTES']),
        present_threshold=timedelta(minutes=app.config['PRESENT_THRESHOLD_MINUTES']),
        late_threshold=timedelta(minutes=app.config['LATE_THRESHOLD_MINUTES']),
        class_timezone=app.config['CLASS_TIMEZONE'],
        clock=clock
    )

def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from qr_attendance.api.qr import qr_bp
    from qr_attendance.api.attendance import attendance_bp

    app.register_blueprint(qr_bp, url_prefix='/api/qr')
    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')

def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from qr_attendance.errors import AttendanceError
    from qr_attendance.utils.helpers import domain_error_response, error_response, handle_error
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(AttendanceError)
    def handle_attendance_error(error):
        return domain_error_response(error)

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return handle_error(e, e.code)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        db.session.rollback()
        app.logger.exception("Unhandled error")
        return error_response("Internal server error", 500, 'InternalError')

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return error_response('Token has expired', 401, 'Unauthorized')

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return error_response('Invalid token', 401, 'Unauthorized')

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return error_response('Authorization token required', 401, 'Unauthorized')

def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    if not app.debug and not app.testing:
        log_file = app.config.get('LOG_FILE', 'logs/app.log')
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        app.logger.info('QR Attendance startup')

def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    import click

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Initialize the database."""
        from qr_attendance import models  # noqa: F401

        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')

        db.create_all()
        click.echo('Created all tables.')

    @app.cli.command('seed-demo')
    @click.option('--teacher', default='teacher@school.edu', help='Principal of the demo teacher')
    def seed_demo(teacher):
        """Seed a demo class and print bearer tokens for it."""
        from flask_jwt_extended import create_access_token
        from qr_attendance.services.seed_service import SeedService

        db.create_all()
        seeded = SeedService.seed_demo(teacher_principal=teacher)
        click.echo(f"Class {seeded['class_id']} of course {seeded['course_id']} starts now.")

        click.echo(f"teacher {teacher}: "
                   f"{create_access_token(identity=teacher, additional_claims={'role': 'teacher'})}")
        for principal in seeded['students']:
            token = create_access_token(identity=principal, additional_claims={'role': 'student'})
            click.echo(f"student {principal}: {token}")
