"""Base model class with common functionality."""
from qr_attendance import db
from qr_attendance.utils.helpers import utcnow

class BaseModel(db.Model):
    """Base model class with common fields."""

    __abstract__ = True

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.id}>'
