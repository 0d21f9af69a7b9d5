"""Group participant movement model"""
from datetime import datetime
from sqlalchemy import CheckConstraint, Column, DateTime, Index, String
from app.models.base import BaseModel

MOVEMENT_ENTERED = "entered"
MOVEMENT_LEFT = "left"
MOVEMENT_TYPES = (MOVEMENT_ENTERED, MOVEMENT_LEFT)


class GroupMovement(BaseModel):
    """One participant joining or leaving a group. Written once, never updated."""
    __tablename__ = "group_movements"
    __table_args__ = (
        CheckConstraint("movement_type IN ('entered', 'left')", name="ck_group_movements_type"),
        Index("ix_group_movements_user_timestamp", "user_id", "timestamp"),
    )

    instance_id = Column(String(64), index=True, nullable=False)
    group_id = Column(String(128), index=True, nullable=False)
    group_name = Column(String(255), nullable=True)  # snapshot at event time
    contact_phone = Column(String(32), index=True, nullable=False)
    contact_name = Column(String(255), nullable=True)
    movement_type = Column(String(10), nullable=False)
    author_phone = Column(String(32), nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<GroupMovement {self.movement_type} {self.contact_phone} in {self.group_id}>"
