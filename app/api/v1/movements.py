# app/api/v1/movements.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id
from app.db.session import get_db
from app.schemas.movement import MovementFilters, MovementType
from app.services.movement_service import MovementService

router = APIRouter()
service = MovementService()


@router.get("/")
def list_movements(
    instance_id: Optional[str] = None,
    group_id: Optional[str] = None,
    movement_type: Optional[MovementType] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """List movements, newest first. Date bounds are inclusive."""
    filters = MovementFilters(
        user_id=user_id,
        instance_id=instance_id,
        group_id=group_id,
        movement_type=movement_type,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return {"success": True, "data": service.list(db, filters)}


@router.get("/group/{group_id}")
def list_group_movements(
    group_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return {"success": True, "data": service.list_for_group(db, user_id, group_id, page, limit)}
