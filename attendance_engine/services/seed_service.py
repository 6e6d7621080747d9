"""Database seeding service for demo data."""
import secrets
from datetime import timedelta

from attendance_engine import db
from attendance_engine.models.attendance_session import AttendanceSession
from attendance_engine.models.schedule import OccurrenceStatus, ScheduleInstance
from attendance_engine.models.school_class import ClassEnrollment, SchoolClass
from attendance_engine.models.user import User, UserRole
from attendance_engine.utils.helpers import utc_now

class SeedService:
    """Service to seed the directory tables with a small demo class."""

    @staticmethod
    def seed_all(session_minutes: int = 15) -> dict:
        """Seed a teacher, students, one class and an open session."""
        teacher = User.query.filter_by(email='teacher@university.edu').first()
        if not teacher:
            teacher = User(
                email='teacher@university.edu',
                full_name='Demo Teacher',
                role=UserRole.TEACHER
            )
            db.session.add(teacher)

        students = []
        for index in range(1, 4):
            email = f'student{index}@university.edu'
            student = User.query.filter_by(email=email).first()
            if not student:
                student = User(
                    email=email,
                    full_name=f'Demo Student {index}',
                    enrollment_no=f'EN2024{index:04d}',
                    role=UserRole.STUDENT,
                    face_image_key=f'faces/student{index}.jpg'
                )
                db.session.add(student)
            students.append(student)
        db.session.flush()

        school_class = SchoolClass(
            subject_name='Data Structures',
            subject_code='CS201',
            class_number='A',
            teacher_id=teacher.id
        )
        db.session.add(school_class)
        db.session.flush()

        for student in students:
            db.session.add(ClassEnrollment(student_id=student.id, class_id=school_class.id))

        now = utc_now()
        session = AttendanceSession(
            session_token=secrets.token_urlsafe(32),
            class_id=school_class.id,
            expires_at=now + timedelta(minutes=session_minutes),
            is_active=True
        )
        db.session.add(session)
        db.session.flush()

        occurrence = ScheduleInstance(
            class_id=school_class.id,
            scheduled_date=now,
            status=OccurrenceStatus.SCHEDULED,
            attendance_session_id=session.id
        )
        db.session.add(occurrence)
        db.session.flush()
        session.schedule_id = occurrence.id

        db.session.commit()

        return {
            'teacher_id': teacher.id,
            'student_ids': [student.id for student in students],
            'class_id': school_class.id,
            'session_token': session.session_token,
            'expires_at': session.expires_at.isoformat()
        }
