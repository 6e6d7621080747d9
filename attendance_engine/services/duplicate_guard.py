"""At-most-one attendance record per (student, session)."""
import logging

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from attendance_engine import db
from attendance_engine.models.attendance import AttendanceRecord
from attendance_engine.utils.errors import AlreadyExists, Internal, InvalidInput, Unavailable

logger = logging.getLogger(__name__)


class DuplicateGuard:
    """Existence check plus the unique index on (student_id, session_id).

    ``check_and_reserve`` rejects early when a record is already visible.
    ``persist`` is the authoritative step: two concurrent writers can both
    pass the check, and the loser's insert fails on the constraint and is
    reported as the same conflict.
    """

    @staticmethod
    def exists(student_id: int, session_id: int) -> bool:
        return db.session.query(
            AttendanceRecord.query.filter_by(
                student_id=student_id, session_id=session_id
            ).exists()
        ).scalar()

    @classmethod
    def check_and_reserve(cls, student_id: int, session_id: int) -> None:
        if cls.exists(student_id, session_id):
            raise AlreadyExists(
                "You have already marked attendance for this session.",
                {'student_id': student_id, 'session_id': session_id}
            )

    @staticmethod
    def persist(record: AttendanceRecord) -> AttendanceRecord:
        """Insert the record, translating storage failures into error kinds."""
        try:
            db.session.add(record)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            if record.session_id is not None and DuplicateGuard.exists(record.student_id, record.session_id):
                raise AlreadyExists(
                    "You have already marked attendance for this session.",
                    {'student_id': record.student_id, 'session_id': record.session_id}
                )
            raise InvalidInput(
                "Attendance record references unknown data",
                {'reason': str(e.orig)}
            )
        except OperationalError as e:
            db.session.rollback()
            logger.error("Record store unavailable: %s", e)
            raise Unavailable("Attendance store is temporarily unavailable")
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception("Failed to persist attendance record")
            raise Internal(f"Error saving attendance: {str(e)}")
        return record
