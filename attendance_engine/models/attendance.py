"""Attendance model with verification details."""
import enum
from attendance_engine import db
from attendance_engine.models.base import BaseModel
from attendance_engine.utils.helpers import utc_now

class AttendanceStatus(enum.Enum):
    """Attendance status enumeration."""
    PRESENT = 'present'
    ABSENT = 'absent'
    LATE = 'late'

    @classmethod
    def values(cls):
        return [status.value for status in cls]

class AttendanceRecord(BaseModel):
    """One attendance fact for a student in a class session.

    ``timestamp`` is the event time; ``created_at`` is when the row was
    stored. The unique constraint on (student_id, session_id) is what
    guarantees a single record per session, the application-level
    existence checks only give an earlier, friendlier rejection.
    Manual entries have no session and are not constrained.
    """

    __tablename__ = 'attendance_records'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'session_id', name='uq_attendance_student_session'),
    )

    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False, index=True)
    session_id = db.Column(db.Integer, db.ForeignKey('attendance_sessions.id'), nullable=True, index=True)
    schedule_id = db.Column(db.Integer, db.ForeignKey('schedule_instances.id'), nullable=True, index=True)
    timestamp = db.Column(db.DateTime, default=utc_now, nullable=False, index=True)
    status = db.Column(db.Enum(AttendanceStatus), nullable=False, default=AttendanceStatus.PRESENT)

    # Verification details
    liveness_passed = db.Column(db.Boolean, default=False, nullable=False)
    manual_entry = db.Column(db.Boolean, default=False, nullable=False)
    marked_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    synced = db.Column(db.Boolean, default=False, nullable=False)
    # Reference to evidence captured on the device for synced claims
    evidence_ref = db.Column(db.String(512), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Location where check-in happened
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    # Relationships
    school_class = db.relationship('SchoolClass')
    marker = db.relationship('User', foreign_keys=[marked_by])

    @property
    def coordinates(self):
        if self.latitude is None or self.longitude is None:
            return None
        return {'latitude': self.latitude, 'longitude': self.longitude}

    def to_dict(self, exclude: list = None) -> dict:
        """Convert to dictionary."""
        result = super().to_dict(exclude=(exclude or []) + ['latitude', 'longitude'])
        result['coordinates'] = self.coordinates
        if self.school_class is not None:
            result['class'] = self.school_class.to_summary()
        return result

    def __repr__(self):
        return f'<AttendanceRecord {self.student_id}-{self.session_id}>'
