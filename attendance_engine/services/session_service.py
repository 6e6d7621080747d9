"""Session validity checks for attendance submissions."""
from datetime import datetime
from typing import Optional

from attendance_engine.models.attendance_session import AttendanceSession
from attendance_engine.utils.errors import SessionInvalid
from attendance_engine.utils.helpers import utc_now


class SessionValidator:
    """Point-in-time check that a session token is open for a class.

    No lock is held after the check returns, so a session may expire
    before the record is written; the record is still accepted.
    """

    @staticmethod
    def find_by_token(session_token: str) -> Optional[AttendanceSession]:
        return AttendanceSession.query.filter_by(session_token=str(session_token)).first()

    @staticmethod
    def validate(session_token: str, class_id: int, now: Optional[datetime] = None) -> AttendanceSession:
        """Return the open session or raise ``SessionInvalid``."""
        now = now or utc_now()
        session = AttendanceSession.query.filter(
            AttendanceSession.session_token == str(session_token),
            AttendanceSession.class_id == class_id,
            AttendanceSession.is_active.is_(True),
            AttendanceSession.expires_at > now
        ).first()

        if not session:
            raise SessionInvalid(
                "This QR code is invalid or has expired.",
                {'session_id': session_token, 'class_id': class_id}
            )
        return session
