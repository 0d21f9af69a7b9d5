from pydantic import BaseModel, Field
from typing import Optional, List, Union, Dict, Any

# Request bodies use the frontend's camelCase keys. Fields are optional so
# the service can answer missing ones with a specific validation message.


class GroupRequest(BaseModel):
    """Fields shared by every group operation"""
    instance_id: Optional[str] = Field(None, alias="instanceId")
    group_id: Optional[str] = Field(None, alias="groupId")

    class Config:
        populate_by_name = True


class LeaveGroupRequest(GroupRequest):
    pass


class ParticipantsRequest(BaseModel):
    """Phones as plain strings or objects with `phone`/`id`"""
    instance_id: Optional[str] = Field(None, alias="instanceId")
    participants: Optional[List[Union[str, Dict[str, Any]]]] = None

    class Config:
        populate_by_name = True


class CreateGroupRequest(ParticipantsRequest):
    subject: Optional[str] = None
    description: Optional[str] = None


class UpdateSubjectRequest(GroupRequest):
    subject: Optional[str] = None


class UpdateDescriptionRequest(GroupRequest):
    description: Optional[str] = None


class UpdateSettingsRequest(GroupRequest):
    action: Optional[str] = Field(None, description="announcement, not_announcement, locked or unlocked")


class MentionEveryoneRequest(GroupRequest):
    text: Optional[str] = None


class GroupParticipant(BaseModel):
    id: str
    name: Optional[str] = None
    is_admin: bool = Field(False, serialization_alias="isAdmin")


class GroupSummary(BaseModel):
    """Group as returned by GET /groups"""
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    creation: Optional[int] = None
    participants: List[GroupParticipant] = Field(default_factory=list)
    picture_url: Optional[str] = Field(None, serialization_alias="pictureUrl")
    announcement: Optional[bool] = None
    locked: Optional[bool] = None
