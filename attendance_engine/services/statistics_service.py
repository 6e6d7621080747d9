"""Attendance aggregation: summaries, missed sessions and class reports."""
import io
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd
from sqlalchemy import case, distinct, func, select

from attendance_engine import db
from attendance_engine.models.attendance import AttendanceRecord, AttendanceStatus
from attendance_engine.models.schedule import OccurrenceStatus, ScheduleInstance
from attendance_engine.models.school_class import ClassEnrollment
from attendance_engine.models.user import User
from attendance_engine.utils.helpers import utc_now


@dataclass
class AttendanceSummary:
    """Sessions held vs. attended for a student."""
    held: int
    attended: int
    missed: int
    percentage: float
    class_id: Optional[int] = None

    def to_dict(self) -> Dict:
        result = asdict(self)
        if self.class_id is None:
            result.pop('class_id')
        return result


@dataclass
class ReportRow:
    """Per-student rollup of a class report."""
    student_id: int
    student_name: str
    enrollment_no: Optional[str]
    present_days: int
    absent_days: int
    late_days: int
    total_days: int
    percentage: float

    def to_dict(self) -> Dict:
        return asdict(self)


def summary_percentage(attended: int, held: int) -> float:
    """No sessions held counts as full attendance."""
    if held == 0:
        return 100.0
    return round(attended / held * 100, 2)


def report_percentage(present: int, total: int) -> float:
    """No recorded days counts as zero in class reports."""
    if total == 0:
        return 0.0
    return round(present / total * 100, 2)


class StatisticsService:
    """Read-only queries over the attendance records."""

    @staticmethod
    def enrolled_class_ids(student_id: int) -> List[int]:
        rows = db.session.query(ClassEnrollment.class_id).filter(
            ClassEnrollment.student_id == student_id
        ).all()
        return [row.class_id for row in rows]

    @classmethod
    def get_summary(cls, student_id: int, class_id: Optional[int] = None) -> AttendanceSummary:
        """Attendance summary across enrolled classes, or for one of them.

        Held sessions are the distinct sessions that produced any record in
        the class set; records outside the student's enrollments never
        count.
        """
        class_ids = cls.enrolled_class_ids(student_id)
        if class_id is not None:
            class_ids = [cid for cid in class_ids if cid == class_id]

        held = attended = 0
        if class_ids:
            held = db.session.query(
                func.count(distinct(AttendanceRecord.session_id))
            ).filter(
                AttendanceRecord.class_id.in_(class_ids),
                AttendanceRecord.session_id.isnot(None)
            ).scalar() or 0

            attended = db.session.query(
                func.count(distinct(AttendanceRecord.session_id))
            ).filter(
                AttendanceRecord.student_id == student_id,
                AttendanceRecord.class_id.in_(class_ids),
                AttendanceRecord.session_id.isnot(None)
            ).scalar() or 0

        return AttendanceSummary(
            held=held,
            attended=attended,
            missed=held - attended,
            percentage=summary_percentage(attended, held),
            class_id=class_id
        )

    @classmethod
    def get_missed(cls, student_id: int, now: Optional[datetime] = None) -> List[ScheduleInstance]:
        """Past, non-cancelled occurrences with a live session the student did not attend."""
        now = now or utc_now()
        class_ids = cls.enrolled_class_ids(student_id)
        if not class_ids:
            return []

        attended_sessions = select(AttendanceRecord.session_id).where(
            AttendanceRecord.student_id == student_id,
            AttendanceRecord.session_id.isnot(None)
        )

        return ScheduleInstance.query.filter(
            ScheduleInstance.class_id.in_(class_ids),
            ScheduleInstance.scheduled_date <= now,
            ScheduleInstance.status != OccurrenceStatus.CANCELLED,
            ScheduleInstance.attendance_session_id.isnot(None),
            ScheduleInstance.attendance_session_id.notin_(attended_sessions)
        ).order_by(ScheduleInstance.scheduled_date.desc(), ScheduleInstance.id.desc()).all()

    @staticmethod
    def get_full_report(
        class_id: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        student_id: Optional[int] = None
    ) -> List[ReportRow]:
        """Group a class's records by student and count each status."""
        def status_count(status: AttendanceStatus):
            return func.sum(case((AttendanceRecord.status == status, 1), else_=0))

        query = db.session.query(
            AttendanceRecord.student_id.label('student_id'),
            User.full_name.label('student_name'),
            User.enrollment_no.label('enrollment_no'),
            status_count(AttendanceStatus.PRESENT).label('present_days'),
            status_count(AttendanceStatus.ABSENT).label('absent_days'),
            status_count(AttendanceStatus.LATE).label('late_days')
        ).join(
            User, AttendanceRecord.student_id == User.id
        ).filter(
            AttendanceRecord.class_id == class_id
        )

        if start_date:
            query = query.filter(AttendanceRecord.timestamp >= start_date)
        if end_date:
            query = query.filter(AttendanceRecord.timestamp <= end_date)
        if student_id:
            query = query.filter(AttendanceRecord.student_id == student_id)

        results = query.group_by(
            AttendanceRecord.student_id, User.full_name, User.enrollment_no
        ).order_by(User.full_name).all()

        rows = []
        for result in results:
            present = int(result.present_days or 0)
            absent = int(result.absent_days or 0)
            late = int(result.late_days or 0)
            total = present + absent + late
            rows.append(ReportRow(
                student_id=result.student_id,
                student_name=result.student_name,
                enrollment_no=result.enrollment_no,
                present_days=present,
                absent_days=absent,
                late_days=late,
                total_days=total,
                percentage=report_percentage(present, total)
            ))
        return rows

    @staticmethod
    def export_full_report(rows: List[ReportRow]) -> io.BytesIO:
        """Render report rows as an Excel workbook."""
        columns = list(ReportRow.__dataclass_fields__)
        report_df = pd.DataFrame([row.to_dict() for row in rows], columns=columns)

        excel_buffer = io.BytesIO()
        with pd.ExcelWriter(excel_buffer, engine='openpyxl') as writer:
            report_df.to_excel(writer, sheet_name='Full Report', index=False)
        excel_buffer.seek(0)
        return excel_buffer
