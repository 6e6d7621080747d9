"""Attendance Engine - Application Factory."""
import logging
import os
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

__version__ = '1.0.0'

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)

def create_app(config_name: str = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from attendance_engine.config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    # Setup logging
    setup_logging(app)

    # External identity comparison
    setup_face_comparator(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Setup database
    setup_database(app)

    # Add CLI commands
    register_commands(app)

    # Add health check
    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'Attendance Engine',
            'version': __version__
        })

    return app

def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from attendance_engine.api.attendance import attendance_bp
    from attendance_engine.api.reports import reports_bp

    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')
    app.register_blueprint(reports_bp, url_prefix='/api/reports')

def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from attendance_engine.utils.errors import AttendanceError, Internal
    from attendance_engine.utils.helpers import handle_error
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(AttendanceError)
    def attendance_error(error):
        return handle_error(error, error.status_code)

    @app.errorhandler(HTTPException)
    def handle_exception(e):
        return handle_error(e, e.code)

    @app.errorhandler(Exception)
    def unexpected_error(error):
        db.session.rollback()
        app.logger.exception('Unhandled error: %s', error)
        return handle_error(Internal('An unexpected server error occurred.'), 500)

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({
            'error': True,
            'message': 'Token has expired',
            'status_code': 401
        }), 401

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return jsonify({
            'error': True,
            'message': 'Invalid token',
            'status_code': 401
        }), 401

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return jsonify({
            'error': True,
            'message': 'Authorization token required',
            'status_code': 401
        }), 401

def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO'), logging.INFO)
    package_logger = logging.getLogger('attendance_engine')
    package_logger.setLevel(level)

    if not app.debug and not app.testing:
        log_dir = os.path.dirname(app.config['LOG_FILE'])
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.FileHandler(app.config['LOG_FILE'])
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)
        package_logger.addHandler(file_handler)

        app.logger.setLevel(level)
        app.logger.info('Attendance Engine startup')

def setup_face_comparator(app: Flask) -> None:
    """Register the face comparison client used by submissions."""
    from attendance_engine.services.identity_service import HttpFaceComparator

    comparator = HttpFaceComparator.from_config(app.config)
    if comparator is None:
        app.logger.warning('FACE_COMPARE_URL not set; submissions will fail as Unavailable')
    app.extensions['face_comparator'] = comparator

def setup_database(app: Flask) -> None:
    """Import models so metadata knows every table."""
    with app.app_context():
        from attendance_engine.models import (  # noqa: F401
            User, SchoolClass, ClassEnrollment,
            AttendanceSession, ScheduleInstance, AttendanceRecord
        )

def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    import click

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Initialize the database."""
        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')

        db.create_all()
        click.echo('Created all tables.')

    @app.cli.command('seed-demo')
    @click.option('--session-minutes', default=15, show_default=True, help='Lifetime of the demo session')
    def seed_demo(session_minutes):
        """Seed a demo class with students and an open session."""
        from attendance_engine.services.seed_service import SeedService

        seeded = SeedService.seed_all(session_minutes=session_minutes)
        click.echo(f"Class {seeded['class_id']} seeded with students {seeded['student_ids']}")
        click.echo(f"Open session token: {seeded['session_token']} (expires {seeded['expires_at']})")

    @app.cli.command('issue-token')
    @click.option('--user-id', type=int, required=True, help='Directory user id')
    def issue_token(user_id):
        """Issue a development access token for a user."""
        from flask_jwt_extended import create_access_token
        from attendance_engine.models.user import User

        user = db.session.get(User, user_id)
        if not user:
            raise click.ClickException(f'User {user_id} not found')
        click.echo(create_access_token(identity=str(user.id)))
