"""Single attendance submission: identity, session and duplicate gates."""
import logging
from datetime import datetime
from numbers import Number
from typing import Any, Dict, Optional

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from attendance_engine import db
from attendance_engine.models.attendance import AttendanceRecord, AttendanceStatus
from attendance_engine.models.user import User
from attendance_engine.services.duplicate_guard import DuplicateGuard
from attendance_engine.services.identity_service import IdentityVerifier, decode_sample_image
from attendance_engine.services.session_service import SessionValidator
from attendance_engine.utils.errors import (
    AttendanceError, Internal, InvalidInput, NotFound, Unauthorized, Unavailable
)
from attendance_engine.utils.helpers import utc_now

logger = logging.getLogger(__name__)


def parse_coordinates(coordinates: Any) -> Dict[str, float]:
    """Validate a ``{latitude, longitude}`` mapping."""
    if not isinstance(coordinates, dict):
        raise InvalidInput("Coordinates must contain latitude and longitude")

    parsed = {}
    for key, bound in (('latitude', 90), ('longitude', 180)):
        value = coordinates.get(key)
        if isinstance(value, bool) or not isinstance(value, Number):
            raise InvalidInput(f"Coordinates {key} must be a number", {'field': key})
        if not -bound <= value <= bound:
            raise InvalidInput(f"Coordinates {key} is out of range", {'field': key})
        parsed[key] = float(value)
    return parsed


def get_identity_verifier() -> IdentityVerifier:
    """Build the verifier from the comparator registered on the app."""
    return IdentityVerifier(
        current_app.extensions.get('face_comparator'),
        current_app.config['MAX_FACE_IMAGE_BYTES']
    )


class SubmissionService:
    """Runs one live submission through every gate, in order.

    Received -> Validated -> IdentityConfirmed -> SessionConfirmed
    -> Reserved -> Persisted. Each gate raises the most specific
    ``AttendanceError``; nothing is retried here.
    """

    def __init__(self, verifier: Optional[IdentityVerifier] = None):
        self.verifier = verifier or get_identity_verifier()

    def submit(
        self,
        student_id: int,
        session_id: Any,
        class_id: Any,
        coordinates: Any,
        liveness_passed: Any,
        face_image: Any,
        now: Optional[datetime] = None
    ) -> AttendanceRecord:
        logger.info(
            "Attendance submission student=%s session=%s class=%s liveness=%s",
            student_id, session_id, class_id, liveness_passed
        )
        try:
            record = self._submit(
                student_id, session_id, class_id, coordinates,
                liveness_passed, face_image, now
            )
        except AttendanceError as e:
            logger.info(
                "Attendance submission rejected student=%s session=%s kind=%s: %s",
                student_id, session_id, e.kind, e.message
            )
            raise
        except OperationalError as e:
            db.session.rollback()
            logger.error("Record store unavailable during submission: %s", e)
            raise Unavailable("Attendance store is temporarily unavailable")
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception("Unexpected storage error during submission")
            raise Internal(f"Error marking attendance: {str(e)}")

        logger.info("Attendance recorded id=%s student=%s session=%s", record.id, student_id, record.session_id)
        return record

    def _submit(self, student_id, session_id, class_id, coordinates, liveness_passed, face_image, now):
        # 1. Basic validation
        if not session_id or not class_id or not coordinates or not face_image:
            raise InvalidInput("Missing required attendance data.")
        if liveness_passed is not True:
            raise InvalidInput("Liveness check was not passed.")
        location = parse_coordinates(coordinates)
        try:
            class_id = int(class_id)
        except (TypeError, ValueError):
            raise InvalidInput("Class id must be an integer", {'field': 'class_id'})

        # 2. Reference face for the student
        student = db.session.get(User, student_id)
        if not student or not student.face_image_key:
            raise NotFound(
                "Student profile not found or face is not registered.",
                {'student_id': student_id}
            )

        # 3. Decode and size-check the sample
        image_bytes = decode_sample_image(face_image, self.verifier.max_image_bytes)

        # 4. Identity
        match = self.verifier.verify(student.face_image_key, image_bytes)
        if not match.matched:
            raise Unauthorized(
                "Face recognition failed. Identity could not be verified.",
                {'student_id': student_id, **match.detail}
            )

        # 5. Session
        session = SessionValidator.validate(session_id, class_id, now=now)

        # 6. Duplicates
        DuplicateGuard.check_and_reserve(student_id, session.id)

        # 7. Persist
        record = AttendanceRecord(
            student_id=student_id,
            class_id=class_id,
            session_id=session.id,
            schedule_id=session.schedule_id,
            latitude=location['latitude'],
            longitude=location['longitude'],
            liveness_passed=True,
            timestamp=now or utc_now(),
            status=AttendanceStatus.PRESENT,
            manual_entry=False,
            synced=False
        )
        return DuplicateGuard.persist(record)
