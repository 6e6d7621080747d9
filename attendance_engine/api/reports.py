"""Class attendance reports and manual corrections for teachers."""
from flask import Blueprint, request, send_file
from flask_jwt_extended import jwt_required
from attendance_engine.services.record_service import RecordService
from attendance_engine.services.statistics_service import StatisticsService
from attendance_engine.utils.decorators import current_user_id, teacher_required
from attendance_engine.utils.errors import InvalidInput
from attendance_engine.utils.helpers import parse_datetime, success_response, utc_now

reports_bp = Blueprint('reports', __name__)

def _date_range():
    start_date = parse_datetime(request.args.get('start_date'), 'start_date')
    end_date = parse_datetime(request.args.get('end_date'), 'end_date')
    if start_date and end_date and start_date > end_date:
        raise InvalidInput("start_date must be before end_date")
    return start_date, end_date

def _record_with_student(record) -> dict:
    data = record.to_dict()
    data['student'] = {
        'id': record.student.id,
        'full_name': record.student.full_name,
        'enrollment_no': record.student.enrollment_no
    } if record.student else None
    return data

@reports_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Reports service is running')

@reports_bp.route('/class/<int:class_id>', methods=['GET'])
@jwt_required()
@teacher_required
def class_attendance(class_id):
    """Attendance records of a class with enrollment stats."""
    start_date, end_date = _date_range()
    records, stats = RecordService.get_class_attendance(
        class_id,
        start_date=start_date,
        end_date=end_date,
        status=request.args.get('status')
    )

    return success_response(
        data={
            'attendance': [_record_with_student(record) for record in records],
            'stats': stats
        }
    )

@reports_bp.route('/records/<int:record_id>', methods=['PATCH'])
@jwt_required()
@teacher_required
def update_record_status(record_id):
    """Correct the status of a record (present, absent, late)."""
    data = request.get_json(silent=True) or {}
    record = RecordService.update_status(record_id, data.get('status'))
    return success_response(data=record.to_dict(), message='Attendance updated successfully')

@reports_bp.route('/records/manual', methods=['POST'])
@jwt_required()
@teacher_required
def create_manual_record():
    """Manually create an attendance record for a student."""
    record = RecordService.create_manual(request.get_json(silent=True), marked_by=current_user_id())
    return success_response(
        data=record.to_dict(),
        message='Manual attendance recorded',
        status_code=201
    )

@reports_bp.route('/schedule/<int:schedule_id>', methods=['GET'])
@jwt_required()
@teacher_required
def schedule_attendance(schedule_id):
    """Records linked to one scheduled class meeting."""
    records = RecordService.get_by_schedule(schedule_id)
    return success_response(data={'attendance': [_record_with_student(record) for record in records]})

@reports_bp.route('/class/<int:class_id>/full', methods=['GET'])
@jwt_required()
@teacher_required
def full_report(class_id):
    """Per-student present/absent/late rollup for a class."""
    start_date, end_date = _date_range()
    rows = StatisticsService.get_full_report(
        class_id,
        start_date=start_date,
        end_date=end_date,
        student_id=request.args.get('student_id', type=int)
    )
    return success_response(data={'report': [row.to_dict() for row in rows]})

@reports_bp.route('/class/<int:class_id>/full/export', methods=['GET'])
@jwt_required()
@teacher_required
def export_full_report(class_id):
    """Export the full report as Excel."""
    start_date, end_date = _date_range()
    rows = StatisticsService.get_full_report(
        class_id,
        start_date=start_date,
        end_date=end_date,
        student_id=request.args.get('student_id', type=int)
    )

    return send_file(
        StatisticsService.export_full_report(rows),
        as_attachment=True,
        download_name=f"class_{class_id}_report_{utc_now().strftime('%Y%m%d')}.xlsx",
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
