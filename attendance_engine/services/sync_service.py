"""Reconciliation of attendance claims captured offline."""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import OperationalError, SQLAlchemyError

from attendance_engine import db
from attendance_engine.models.attendance import AttendanceRecord, AttendanceStatus
from attendance_engine.services.duplicate_guard import DuplicateGuard
from attendance_engine.services.session_service import SessionValidator
from attendance_engine.services.submission_service import parse_coordinates
from attendance_engine.utils.errors import (
    AttendanceError, Conflict, Internal, InvalidInput, InvalidSession, Unavailable
)
from attendance_engine.utils.helpers import parse_datetime

logger = logging.getLogger(__name__)

SYNC_NOTE = "Synced from offline data"


@dataclass
class SyncOutcome:
    """Result for one claim of a sync batch."""
    index: int
    session_id: Any
    status: str  # success | skipped | failed
    message: Optional[str] = None
    kind: Optional[str] = None
    record_id: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'index': self.index,
            'session_id': self.session_id,
            'status': self.status,
        }
        for key in ('message', 'kind', 'record_id'):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.details:
            result['details'] = self.details
        return result


class SyncService:
    """Replays offline claims through the duplicate and session rules.

    Claims are not re-verified against the face comparison service: the
    device ran liveness and face checks before queueing them. Each record
    keeps the claim's evidence reference and a sync note so the trust
    decision stays auditable.
    """

    def __init__(self, max_batch: Optional[int] = None):
        self.max_batch = max_batch

    def reconcile(self, student_id: int, claims: Any) -> List[SyncOutcome]:
        if not isinstance(claims, list) or len(claims) == 0:
            raise InvalidInput("No attendance records to sync.")
        if self.max_batch and len(claims) > self.max_batch:
            raise InvalidInput(
                f"Too many attendance records in one sync (max {self.max_batch}).",
                {'count': len(claims), 'max_batch': self.max_batch}
            )

        outcomes = [self._reconcile_claim(student_id, index, claim) for index, claim in enumerate(claims)]

        counts = {status: sum(1 for o in outcomes if o.status == status) for status in ('success', 'skipped', 'failed')}
        logger.info(
            "Sync completed student=%s total=%d success=%d skipped=%d failed=%d",
            student_id, len(outcomes), counts['success'], counts['skipped'], counts['failed']
        )
        return outcomes

    def _reconcile_claim(self, student_id: int, index: int, claim: Any) -> SyncOutcome:
        session_ref = claim.get('session_id') if isinstance(claim, dict) else None
        try:
            record = self._apply_claim(student_id, claim)
        except Conflict:
            return SyncOutcome(index, session_ref, 'skipped', message='Already exists.', kind='Conflict')
        except AttendanceError as e:
            return SyncOutcome(index, session_ref, 'failed', message=e.message, kind=e.kind, details=e.details)
        except OperationalError as e:
            db.session.rollback()
            logger.error("Record store unavailable while syncing claim %d: %s", index, e)
            error = Unavailable("Attendance store is temporarily unavailable")
            return SyncOutcome(index, session_ref, 'failed', message=error.message, kind=error.kind)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception("Unexpected storage error while syncing claim %d", index)
            error = Internal(f"Error syncing attendance: {str(e)}")
            return SyncOutcome(index, session_ref, 'failed', message=error.message, kind=error.kind)
        except Exception as e:
            db.session.rollback()
            logger.exception("Unexpected error while syncing claim %d", index)
            error = Internal(f"Error syncing attendance: {str(e)}")
            return SyncOutcome(index, session_ref, 'failed', message=error.message, kind=error.kind)

        return SyncOutcome(index, session_ref, 'success', record_id=record.id)

    def _apply_claim(self, student_id: int, claim: Any) -> AttendanceRecord:
        if not isinstance(claim, dict):
            raise InvalidInput("Attendance claim must be an object")
        if not claim.get('session_id'):
            raise InvalidInput("Missing session_id", {'field': 'session_id'})

        session = SessionValidator.find_by_token(claim['session_id'])
        if session is None:
            raise InvalidSession("Unknown attendance session", {'session_id': claim['session_id']})

        class_id = claim.get('class_id')
        if class_id is not None and str(class_id) != str(session.class_id):
            raise InvalidSession(
                "Session does not belong to this class",
                {'session_id': claim['session_id'], 'class_id': class_id}
            )

        DuplicateGuard.check_and_reserve(student_id, session.id)

        timestamp = parse_datetime(claim.get('timestamp'), 'timestamp')
        if timestamp is None:
            raise InvalidInput("Missing timestamp", {'field': 'timestamp'})

        coordinates = claim.get('coordinates')
        location = parse_coordinates(coordinates) if coordinates else {}

        record = AttendanceRecord(
            student_id=student_id,
            class_id=session.class_id,
            session_id=session.id,
            schedule_id=claim.get('schedule_id') or session.schedule_id,
            latitude=location.get('latitude'),
            longitude=location.get('longitude'),
            liveness_passed=claim.get('liveness_passed') is True,
            evidence_ref=claim.get('evidence_ref'),
            timestamp=timestamp,
            status=AttendanceStatus.PRESENT,
            manual_entry=False,
            synced=True,
            notes=SYNC_NOTE
        )
        return DuplicateGuard.persist(record)
