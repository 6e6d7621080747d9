"""Scheduled occurrences of class meetings."""
import enum
from attendance_engine import db
from attendance_engine.models.base import BaseModel

class OccurrenceStatus(enum.Enum):
    """Lifecycle of a scheduled class meeting."""
    SCHEDULED = 'scheduled'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

class ScheduleInstance(BaseModel):
    """A dated instance of a recurring class meeting."""

    __tablename__ = 'schedule_instances'

    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False, index=True)
    scheduled_date = db.Column(db.DateTime, nullable=False, index=True)
    status = db.Column(db.Enum(OccurrenceStatus), nullable=False, default=OccurrenceStatus.SCHEDULED)

    # Set once a live attendance session was opened for this meeting
    attendance_session_id = db.Column(
        db.Integer, db.ForeignKey('attendance_sessions.id'), nullable=True
    )

    # Relationships
    school_class = db.relationship('SchoolClass', backref=db.backref('schedule_instances', lazy='dynamic'))
    attendance_session = db.relationship('AttendanceSession', foreign_keys=[attendance_session_id])

    def to_dict(self):
        """Convert to dictionary with class context."""
        return {
            'id': self.id,
            'scheduled_date': self.scheduled_date.isoformat(),
            'status': self.status.value if self.status else None,
            'attendance_session_id': self.attendance_session_id,
            'class': self.school_class.to_summary() if self.school_class else None
        }
