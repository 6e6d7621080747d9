"""Class (course section) model."""
from attendance_engine import db
from attendance_engine.models.base import BaseModel

class SchoolClass(BaseModel):
    """A class students enroll in and attend sessions of."""

    __tablename__ = 'classes'

    subject_name = db.Column(db.String(255), nullable=False)
    subject_code = db.Column(db.String(50), nullable=True, index=True)
    class_number = db.Column(db.String(50), nullable=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    # Relationships
    teacher = db.relationship('User', backref='teaching_classes')
    enrollments = db.relationship('ClassEnrollment', backref='school_class', lazy='dynamic')

    def to_summary(self) -> dict:
        """Short form attached to records and reports."""
        return {
            'id': self.id,
            'subject_name': self.subject_name,
            'subject_code': self.subject_code,
            'class_number': self.class_number
        }

    def __repr__(self):
        return f'<SchoolClass {self.subject_code or self.subject_name}>'


class ClassEnrollment(BaseModel):
    """Membership of a student in a class."""

    __tablename__ = 'class_enrollments'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'class_id', name='uq_enrollment_student_class'),
    )

    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False, index=True)

    student = db.relationship('User', backref=db.backref('enrollments', lazy='dynamic'))

    def __repr__(self):
        return f'<ClassEnrollment {self.student_id}-{self.class_id}>'
