from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime


class AutoMessageUpsert(BaseModel):
    """
    Create or update an auto message configuration.

    Omitted (or null) fields keep their stored value on update.
    No group_id means the user's global configuration.
    """
    group_id: Optional[str] = Field(None, description="WhatsApp group JID; omit for the global default")
    welcome_enabled: Optional[bool] = None
    welcome_message: Optional[str] = Field(None, max_length=4096)
    welcome_delay_seconds: Optional[int] = Field(None, ge=0)
    goodbye_enabled: Optional[bool] = None
    goodbye_message: Optional[str] = Field(None, max_length=4096)
    goodbye_delay_seconds: Optional[int] = Field(None, ge=0)

    @field_validator('group_id')
    @classmethod
    def blank_group_is_global(cls, v):
        """An empty group id addresses the global row"""
        if v is None or not v.strip():
            return None
        return v.strip()


class AutoMessageResponse(BaseModel):
    id: str
    user_id: str
    group_id: Optional[str] = None
    welcome_enabled: bool
    welcome_message: Optional[str] = None
    welcome_delay_seconds: int
    goodbye_enabled: bool
    goodbye_message: Optional[str] = None
    goodbye_delay_seconds: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class EffectiveAutoMessages(BaseModel):
    """Resolved configuration per message kind (group override or global)"""
    welcome: Optional[AutoMessageResponse] = None
    goodbye: Optional[AutoMessageResponse] = None
