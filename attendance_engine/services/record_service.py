"""Attendance record listing and teacher-side corrections."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from attendance_engine.models.attendance import AttendanceRecord, AttendanceStatus
from attendance_engine.models.school_class import ClassEnrollment, SchoolClass
from attendance_engine.models.user import User
from attendance_engine.services.duplicate_guard import DuplicateGuard
from attendance_engine.utils.errors import InvalidInput, NotFound
from attendance_engine.utils.helpers import parse_datetime

logger = logging.getLogger(__name__)


def parse_status(status: Any) -> AttendanceStatus:
    if status not in AttendanceStatus.values():
        raise InvalidInput(
            'Invalid status.',
            {'status': status, 'allowed': AttendanceStatus.values()}
        )
    return AttendanceStatus(status)


def parse_id(value: Any, field: str, required: bool = True) -> Optional[int]:
    if value is None or value == '':
        if required:
            raise InvalidInput(f"Missing required field: {field}", {'field': field})
        return None
    if isinstance(value, bool):
        raise InvalidInput(f"{field} must be an integer", {'field': field})
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{field} must be an integer", {'field': field})


class RecordService:
    """Queries and corrections on stored attendance records."""

    @staticmethod
    def get_records(
        student_id: int,
        class_id: Optional[int] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[AttendanceRecord], Dict[str, int]]:
        """Student's records, newest first, with pagination metadata."""
        if page < 1 or limit < 1:
            raise InvalidInput("page and limit must be positive integers")

        query = AttendanceRecord.query.filter_by(student_id=student_id)
        if class_id is not None:
            query = query.filter_by(class_id=class_id)

        pagination = query.order_by(
            AttendanceRecord.timestamp.desc(), AttendanceRecord.id.desc()
        ).paginate(page=page, per_page=limit, error_out=False)

        return pagination.items, {
            'total_records': pagination.total,
            'total_pages': pagination.pages,
            'current_page': page,
            'limit': limit
        }

    @staticmethod
    def get_class_attendance(
        class_id: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        status: Optional[str] = None
    ) -> Tuple[List[AttendanceRecord], Dict[str, int]]:
        """Records of a class plus enrollment-based stats.

        ``absent`` is enrolled minus present records, a coarse figure that
        ignores which session each record belongs to.
        """
        query = AttendanceRecord.query.filter_by(class_id=class_id)

        if start_date:
            query = query.filter(AttendanceRecord.timestamp >= start_date)
        if end_date:
            query = query.filter(AttendanceRecord.timestamp <= end_date)
        if status and status != 'all':
            query = query.filter(AttendanceRecord.status == parse_status(status))

        records = query.order_by(AttendanceRecord.timestamp.desc()).all()
        total_enrolled = ClassEnrollment.query.filter_by(class_id=class_id).count()
        present = len([r for r in records if r.status == AttendanceStatus.PRESENT])

        return records, {
            'total_enrolled': total_enrolled,
            'present': present,
            'absent': total_enrolled - present
        }

    @staticmethod
    def get_by_schedule(schedule_id: int) -> List[AttendanceRecord]:
        return AttendanceRecord.query.filter_by(schedule_id=schedule_id).order_by(
            AttendanceRecord.timestamp.desc()
        ).all()

    @staticmethod
    def update_status(record_id: int, status: Any) -> AttendanceRecord:
        """Manual override of a record's status."""
        new_status = parse_status(status)

        record = AttendanceRecord.get_by_id(record_id)
        if not record:
            raise NotFound('Record not found.', {'record_id': record_id})

        old_status = record.status
        record.update(status=new_status)
        logger.info(
            "Attendance status corrected id=%s %s -> %s",
            record.id, old_status.value, new_status.value
        )
        return record

    @staticmethod
    def create_manual(data: Dict[str, Any], marked_by: int) -> AttendanceRecord:
        """Record attendance on behalf of a student."""
        if not isinstance(data, dict):
            raise InvalidInput("Request body must be JSON")

        student_id = parse_id(data.get('student_id'), 'student_id')
        class_id = parse_id(data.get('class_id'), 'class_id')
        schedule_id = parse_id(data.get('schedule_id'), 'schedule_id', required=False)
        status = parse_status(data.get('status'))
        timestamp = parse_datetime(data.get('timestamp'), 'timestamp')
        if timestamp is None:
            raise InvalidInput("Missing required field: timestamp", {'field': 'timestamp'})

        if not User.get_by_id(student_id):
            raise NotFound("Student not found", {'student_id': student_id})
        if not SchoolClass.get_by_id(class_id):
            raise NotFound("Class not found", {'class_id': class_id})

        record = AttendanceRecord(
            student_id=student_id,
            class_id=class_id,
            schedule_id=schedule_id,
            status=status,
            timestamp=timestamp,
            manual_entry=True,
            marked_by=marked_by,
            notes=data.get('notes')
        )
        DuplicateGuard.persist(record)
        logger.info(
            "Manual attendance created id=%s student=%s class=%s by=%s",
            record.id, student_id, class_id, marked_by
        )
        return record
