"""Live attendance sessions opened for a class."""
from attendance_engine import db
from attendance_engine.models.base import BaseModel
from attendance_engine.utils.helpers import utc_now
from datetime import datetime
from typing import Optional

class AttendanceSession(BaseModel):
    """Time-boxed window in which students can mark attendance.

    Sessions are opened by the scheduling side of the system; the
    attendance engine only reads them. ``id`` is the canonical session
    identifier stored on records, ``session_token`` is the value
    presented by clients.
    """

    __tablename__ = 'attendance_sessions'

    session_token = db.Column(db.String(128), unique=True, nullable=False, index=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False, index=True)
    schedule_id = db.Column(db.Integer, nullable=True, index=True)
    expires_at = db.Column(db.DateTime, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Relationships
    school_class = db.relationship('SchoolClass', backref='attendance_sessions')
    records = db.relationship('AttendanceRecord', backref='session', lazy='dynamic')

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if session is expired."""
        return (now or utc_now()) >= self.expires_at

    def is_open(self, now: Optional[datetime] = None) -> bool:
        return bool(self.is_active) and not self.is_expired(now)

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'id': self.id,
            'class_id': self.class_id,
            'schedule_id': self.schedule_id,
            'expires_at': self.expires_at.isoformat(),
            'is_active': self.is_open()
        }
