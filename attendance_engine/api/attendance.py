"""Student attendance API: submission, offline sync and statistics."""
from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required
from attendance_engine import limiter
from attendance_engine.services.record_service import RecordService
from attendance_engine.services.statistics_service import StatisticsService
from attendance_engine.services.submission_service import SubmissionService
from attendance_engine.services.sync_service import SyncService
from attendance_engine.utils.decorators import current_user_id, student_required
from attendance_engine.utils.errors import InvalidInput
from attendance_engine.utils.helpers import success_response

attendance_bp = Blueprint('attendance', __name__)

def _submission_limit():
    return current_app.config.get('SUBMISSION_RATE_LIMIT', '10 per minute')

def _pagination_args():
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', current_app.config['DEFAULT_PAGE_SIZE'], type=int)
    return page, min(limit, current_app.config['MAX_PAGE_SIZE'])

@attendance_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Attendance service is running')

@attendance_bp.route('', methods=['POST'])
@jwt_required()
@student_required
@limiter.limit(_submission_limit)
def submit_attendance():
    """Submit attendance after face verification."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be JSON")

    record = SubmissionService().submit(
        student_id=current_user_id(),
        session_id=data.get('session_id'),
        class_id=data.get('class_id'),
        coordinates=data.get('coordinates'),
        liveness_passed=data.get('liveness_passed'),
        face_image=data.get('face_image')
    )

    return success_response(
        data=record.to_dict(),
        message='Attendance marked successfully!',
        status_code=201
    )

@attendance_bp.route('/sync', methods=['POST'])
@jwt_required()
@student_required
def sync_attendance():
    """Sync attendance captured while offline."""
    data = request.get_json(silent=True)
    claims = data.get('attendances') if isinstance(data, dict) else None

    outcomes = SyncService(current_app.config.get('MAX_SYNC_BATCH')).reconcile(current_user_id(), claims)

    return success_response(
        data={'results': [outcome.to_dict() for outcome in outcomes]},
        message='Sync completed.'
    )

@attendance_bp.route('/records', methods=['GET'])
@jwt_required()
@student_required
def get_my_records():
    """Get the student's attendance records, paginated."""
    page, limit = _pagination_args()
    records, pagination = RecordService.get_records(current_user_id(), page=page, limit=limit)

    return success_response(
        data={
            'records': [record.to_dict() for record in records],
            'pagination': pagination
        },
        message='Records fetched successfully'
    )

@attendance_bp.route('/records/class/<int:class_id>', methods=['GET'])
@jwt_required()
@student_required
def get_my_class_records(class_id):
    """Get the student's attendance records for one class, paginated."""
    page, limit = _pagination_args()
    records, pagination = RecordService.get_records(
        current_user_id(), class_id=class_id, page=page, limit=limit
    )

    return success_response(
        data={
            'records': [record.to_dict() for record in records],
            'pagination': pagination
        },
        message='Class records fetched successfully'
    )

@attendance_bp.route('/summary', methods=['GET'])
@jwt_required()
@student_required
def get_my_summary():
    """Attendance summary across all enrolled classes."""
    summary = StatisticsService.get_summary(current_user_id())
    return success_response(
        data={'summary': summary.to_dict()},
        message='Overall summary fetched successfully'
    )

@attendance_bp.route('/summary/class/<int:class_id>', methods=['GET'])
@jwt_required()
@student_required
def get_my_class_summary(class_id):
    """Attendance summary for a single class."""
    summary = StatisticsService.get_summary(current_user_id(), class_id=class_id)
    return success_response(
        data={'summary': summary.to_dict()},
        message='Class summary fetched successfully'
    )

@attendance_bp.route('/missed', methods=['GET'])
@jwt_required()
@student_required
def get_my_missed():
    """Sessions the student missed, most recent first."""
    missed = StatisticsService.get_missed(current_user_id())
    return success_response(
        data={
            'count': len(missed),
            'missed': [occurrence.to_dict() for occurrence in missed]
        },
        message='Missed classes fetched successfully'
    )
