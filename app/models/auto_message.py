"""Welcome/goodbye auto message configuration"""
from sqlalchemy import Boolean, Column, Index, Integer, String, Text, UniqueConstraint, text
from app.models.base import BaseModel


class GroupAutoMessage(BaseModel):
    """
    Auto message policy for one group, or the user's global default
    when group_id is NULL.

    One row per (user_id, group_id); the partial index covers the global
    row since NULLs never collide in the plain unique constraint.
    """
    __tablename__ = "group_auto_messages"
    __table_args__ = (
        UniqueConstraint("user_id", "group_id", name="uq_group_auto_messages_user_group"),
        Index(
            "uq_group_auto_messages_user_global",
            "user_id",
            unique=True,
            postgresql_where=text("group_id IS NULL"),
            sqlite_where=text("group_id IS NULL"),
        ),
    )

    group_id = Column(String(128), nullable=True)
    welcome_enabled = Column(Boolean, nullable=False, default=False)
    welcome_message = Column(Text, nullable=True)
    welcome_delay_seconds = Column(Integer, nullable=False, default=0)
    goodbye_enabled = Column(Boolean, nullable=False, default=False)
    goodbye_message = Column(Text, nullable=True)
    goodbye_delay_seconds = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<GroupAutoMessage user={self.user_id} group={self.group_id or 'global'}>"
