"""Import all models so Base.metadata knows every table"""
from app.models.base import Base

from app.models.movement import GroupMovement
from app.models.auto_message import GroupAutoMessage

__all__ = ["Base", "GroupMovement", "GroupAutoMessage"]
