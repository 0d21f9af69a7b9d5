# app/api/v1/groups.py
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from app.api.deps import get_current_user_id
from app.schemas.group import (
    CreateGroupRequest,
    LeaveGroupRequest,
    MentionEveryoneRequest,
    ParticipantsRequest,
    UpdateDescriptionRequest,
    UpdateSettingsRequest,
    UpdateSubjectRequest,
)
from app.services import get_group_service
from app.services.group_service import GroupService

router = APIRouter()


@router.get("/")
def list_groups(
    instance_id: Optional[str] = Query(None, alias="instanceId"),
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
):
    """List the groups of an instance (cached per instance)"""
    return service.list_groups(user_id, instance_id)


@router.get("/participants")
def get_participants(
    instance_id: Optional[str] = Query(None, alias="instanceId"),
    group_id: Optional[str] = Query(None, alias="groupId"),
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
):
    return service.get_participants(user_id, instance_id, group_id)


@router.get("/invite-code")
def get_invite_code(
    instance_id: Optional[str] = Query(None, alias="instanceId"),
    group_id: Optional[str] = Query(None, alias="groupId"),
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
):
    return service.get_invite_code(user_id, instance_id, group_id)


@router.post("/leave")
def leave_group(
    data: LeaveGroupRequest,
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
):
    return service.leave_group(user_id, data.instance_id, data.group_id)


@router.post("/validate-participants")
def validate_participants(
    data: ParticipantsRequest,
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
):
    """Check which participant phones exist on WhatsApp (1-1024 entries)"""
    return service.validate_participants(user_id, data.instance_id, data.participants)


@router.post("/create", status_code=status.HTTP_201_CREATED)
def create_group(
    data: CreateGroupRequest,
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
):
    return service.create_group(user_id, data.instance_id, data.subject, data.description, data.participants)


@router.post("/update-picture")
def update_picture(
    instance_id: Optional[str] = Form(None, alias="instanceId"),
    group_id: Optional[str] = Form(None, alias="groupId"),
    image: Optional[UploadFile] = File(None),
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
):
    """Upload a new group picture (multipart, field `image`, max 5MB)"""
    content = image.file.read() if image else None
    return service.update_picture(
        user_id,
        instance_id,
        group_id,
        content,
        image.filename if image else None,
        image.content_type if image else None,
    )


@router.post("/update-subject")
def update_subject(
    data: UpdateSubjectRequest,
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
):
    return service.update_subject(user_id, data.instance_id, data.group_id, data.subject)


@router.post("/update-description")
def update_description(
    data: UpdateDescriptionRequest,
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
):
    return service.update_description(user_id, data.instance_id, data.group_id, data.description)


@router.post("/update-settings")
def update_settings(
    data: UpdateSettingsRequest,
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
):
    """action: announcement, not_announcement, locked or unlocked"""
    return service.update_settings(user_id, data.instance_id, data.group_id, data.action)


@router.post("/mention-everyone")
def mention_everyone(
    data: MentionEveryoneRequest,
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service),
):
    return service.mention_everyone(user_id, data.instance_id, data.group_id, data.text)
