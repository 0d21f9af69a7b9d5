"""
Base model with common fields for all database models.
Provides consistent structure and helper methods.
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def generate_id() -> str:
    return str(uuid.uuid4())


class BaseModel(Base):
    """
    Abstract base model with common fields.

    Provides:
    - id: UUID primary key (string)
    - user_id: Owning user (main backend id)
    - created_at: Auto timestamp on creation
    - updated_at: Auto timestamp on updates
    """
    __abstract__ = True

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(64), index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        """Convert model to dictionary for JSON serialization"""
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            result[column.name] = value
        return result
