from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime

MovementType = Literal["entered", "left"]


class MovementCreate(BaseModel):
    """Movement to persist; phones are canonicalized by the service"""
    user_id: str
    instance_id: str
    group_id: str
    group_name: Optional[str] = None
    contact_phone: str
    contact_name: Optional[str] = None
    movement_type: MovementType
    author_phone: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class MovementFilters(BaseModel):
    """Conjunctive filters for listing movements"""
    user_id: str
    instance_id: Optional[str] = None
    group_id: Optional[str] = None
    movement_type: Optional[MovementType] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=500)


class MovementResponse(BaseModel):
    id: str
    user_id: str
    instance_id: str
    group_id: str
    group_name: Optional[str] = None
    contact_phone: str
    contact_name: Optional[str] = None
    movement_type: MovementType
    author_phone: Optional[str] = None
    timestamp: datetime
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MovementListResult(BaseModel):
    movements: List[MovementResponse]
    total: int
    page: int
    limit: int
    total_pages: int