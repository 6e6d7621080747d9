"""Models package with all models."""
from .base import BaseModel
from .user import User, UserRole
from .school_class import SchoolClass, ClassEnrollment
from .attendance_session import AttendanceSession
from .schedule import ScheduleInstance, OccurrenceStatus
from .attendance import AttendanceRecord, AttendanceStatus

__all__ = [
    'BaseModel', 'User', 'UserRole',
    'SchoolClass', 'ClassEnrollment',
    'AttendanceSession', 'ScheduleInstance', 'OccurrenceStatus',
    'AttendanceRecord', 'AttendanceStatus'
]
