"""Base model class with common functionality."""
import enum
from datetime import datetime
from typing import Dict, Any, Optional
from attendance_engine import db
from attendance_engine.utils.helpers import utc_now

class BaseModel(db.Model):
    """Base model class with common fields and methods."""

    __abstract__ = True

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def update(self, **kwargs) -> 'BaseModel':
        """Update instance with provided data."""
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)

        self.updated_at = utc_now()
        db.session.commit()
        return self

    def to_dict(self, exclude: list = None) -> Dict[str, Any]:
        """Convert instance to dictionary."""
        exclude = exclude or []
        result = {}

        for column in self.__table__.columns:
            key = column.name
            if key not in exclude:
                value = getattr(self, key)
                if isinstance(value, datetime):
                    value = value.isoformat()
                elif isinstance(value, enum.Enum):
                    value = value.value
                result[key] = value

        return result

    @classmethod
    def get_by_id(cls, id: int) -> Optional['BaseModel']:
        """Get instance by ID."""
        return db.session.get(cls, id)

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.id}>'
