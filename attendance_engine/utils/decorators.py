"""Custom decorators for authorization."""
from functools import wraps
from flask_jwt_extended import get_jwt_identity
from attendance_engine.models.user import User
from attendance_engine.utils.helpers import error_response

def current_user_id() -> int:
    """JWT subjects are strings; directory ids are integers."""
    return int(get_jwt_identity())

def _load_current_user():
    try:
        return User.get_by_id(current_user_id())
    except (TypeError, ValueError):
        return None

def teacher_required(f):
    """Decorator to require teacher role or higher."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = _load_current_user()

        if not user:
            return error_response("User not found", 404)

        if not user.is_teacher():
            return error_response("Teacher access required", 403)

        return f(*args, **kwargs)
    return decorated_function

def student_required(f):
    """Decorator to require student role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = _load_current_user()

        if not user:
            return error_response("User not found", 404)

        if not user.is_student():
            return error_response("Student access required", 403)

        return f(*args, **kwargs)
    return decorated_function
