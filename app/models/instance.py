"""
WhatsApp instance record, owned by the main backend.

This service only reads it to map an instance to its owning user, so the
model lives on its own declarative base and is never created by init_db.
"""
from sqlalchemy import Column, String
from sqlalchemy.orm import declarative_base

InstanceBase = declarative_base()


class Instance(InstanceBase):
    """Read-only view of the `instances` collection"""
    __tablename__ = "instances"

    id = Column(String(24), primary_key=True)  # 24-hex object id
    instance_name = Column(String(255), unique=True, index=True, nullable=False)
    user_id = Column(String(64), index=True, nullable=False)
    status = Column(String(50), nullable=True)
    name = Column(String(255), nullable=True)

    def to_info(self) -> dict:
        return {
            "id": self.id,
            "instance_name": self.instance_name,
            "user_id": self.user_id,
            "status": self.status,
            "name": self.name,
        }

    def __repr__(self):
        return f"<Instance {self.instance_name}>"
