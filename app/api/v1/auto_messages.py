# app/api/v1/auto_messages.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id
from app.core.errors import not_found_error
from app.db.session import get_db
from app.schemas.auto_message import AutoMessageResponse, AutoMessageUpsert, EffectiveAutoMessages
from app.services.auto_message_service import AutoMessageService
from app.utils.variables import AVAILABLE_VARIABLES

router = APIRouter()
service = AutoMessageService()


def _serialize(row):
    return AutoMessageResponse.model_validate(row) if row is not None else None


@router.post("/")
def upsert_auto_message(
    data: AutoMessageUpsert,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Create or update the config for `group_id` (omit it for the global default)"""
    config = service.upsert(db, user_id, data)
    return {"success": True, "data": _serialize(config)}


@router.put("/{config_id}")
def update_auto_message(
    config_id: str,
    data: AutoMessageUpsert,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Same as POST; rows are keyed by (user, group_id), not by id"""
    config = service.upsert(db, user_id, data)
    return {"success": True, "data": _serialize(config)}


@router.get("/")
def list_auto_messages(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    configs = service.list(db, user_id)
    return {"success": True, "data": [_serialize(c) for c in configs]}


@router.get("/variables")
def list_variables(user_id: str = Depends(get_current_user_id)):
    """Template variables usable in welcome/goodbye messages"""
    return {"success": True, "data": AVAILABLE_VARIABLES}


@router.get("/group/{group_id}")
def get_group_auto_messages(
    group_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Effective welcome/goodbye config for a group (override or global)"""
    effective = service.get_effective(db, user_id, group_id)
    return {
        "success": True,
        "data": EffectiveAutoMessages(
            welcome=_serialize(effective["welcome"]),
            goodbye=_serialize(effective["goodbye"]),
        ),
    }


@router.delete("/{config_id}")
def delete_auto_message(
    config_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    if not service.delete(db, config_id, user_id):
        raise not_found_error("Configuration")
    return {"success": True, "message": "Configuration deleted"}
