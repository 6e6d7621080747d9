"""User directory model."""
from enum import Enum
from attendance_engine import db
from attendance_engine.models.base import BaseModel

class UserRole(Enum):
    """User roles enumeration."""
    STUDENT = 'student'
    TEACHER = 'teacher'
    ADMIN = 'admin'

class User(BaseModel):
    """User model for students, teachers and admins.

    Accounts and credentials are owned by the external auth service; this
    table mirrors the directory fields the attendance engine reads.
    """

    __tablename__ = 'users'

    # Basic Information
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(255), nullable=False)
    enrollment_no = db.Column(db.String(50), unique=True, nullable=True, index=True)
    role = db.Column(db.Enum(UserRole), nullable=False, default=UserRole.STUDENT)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Object key of the registered reference face image
    face_image_key = db.Column(db.String(512), nullable=True)

    # Relationships
    attendance_records = db.relationship(
        'AttendanceRecord',
        backref='student',
        lazy='dynamic',
        foreign_keys='AttendanceRecord.student_id'
    )

    def is_teacher(self) -> bool:
        """Check if user is a teacher."""
        return self.role in [UserRole.TEACHER, UserRole.ADMIN]

    def is_student(self) -> bool:
        """Check if user is a student."""
        return self.role == UserRole.STUDENT

    @property
    def face_registered(self) -> bool:
        return bool(self.face_image_key)

    def to_dict(self, exclude: list = None) -> dict:
        """Convert to dictionary excluding the face reference key."""
        exclude = (exclude or []) + ['face_image_key']
        result = super().to_dict(exclude=exclude)
        result['face_registered'] = self.face_registered
        return result

    def __repr__(self) -> str:
        return f'<User {self.email}>'
