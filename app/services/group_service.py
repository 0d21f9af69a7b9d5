# app/services/group_service.py
"""
Group administration - every operation is delegated to the Evolution API.

Methods validate their input, resolve the caller's instance, call the
gateway and return the response body as a dict. Failures are raised as
AppError; mutations invalidate the group-list cache and notify the
frontend relay.
"""
import logging
import time
from typing import Any, Dict, List, Optional

from app.core.errors import (
    AppError,
    EvolutionAPIError,
    handle_controller_error,
    not_found_error,
    rate_limit_error,
    validation_error,
)
from app.schemas.group import GroupParticipant, GroupSummary
from app.services.contact_validation import validate_phone_numbers
from app.utils.phone import extract_phone_from_jid, format_phone_for_display, normalize_phone_list

log = logging.getLogger("whatsgroups.groups")

MAX_PARTICIPANTS = 1024
MAX_PICTURE_BYTES = 5 * 1024 * 1024
ALLOWED_PICTURE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp")
GROUP_SETTING_ACTIONS = ("announcement", "not_announcement", "locked", "unlocked")


def _require(value, message: str):
    if value is None or (isinstance(value, str) and not value.strip()):
        raise validation_error(message)
    return value


def _participant_phones(participants) -> List[str]:
    """Raw phones from strings or {phone|id} objects, empties dropped."""
    phones = []
    for p in participants:
        phone = p if isinstance(p, str) else (p.get("phone") or p.get("id")) if isinstance(p, dict) else None
        if phone:
            phones.append(phone)
    return phones


def _check_participant_count(participants) -> None:
    if participants is None or not isinstance(participants, list):
        raise validation_error("Participant list is required")
    if len(participants) == 0:
        raise validation_error("Add at least one participant")
    if len(participants) > MAX_PARTICIPANTS:
        raise validation_error(f"At most {MAX_PARTICIPANTS} participants are allowed")


def map_group(group: Dict[str, Any]) -> Dict[str, Any]:
    """Gateway group -> API group (camelCase keys)."""
    creation = group.get("creation")
    try:
        creation = int(creation) if creation is not None else None
    except (TypeError, ValueError):
        creation = None

    participants = [
        GroupParticipant(
            id=p.get("id") or p.get("jid") or "",
            name=p.get("name") or p.get("pushName"),
            is_admin=bool(p.get("isAdmin") or p.get("admin")),
        )
        for p in group.get("participants") or []
        if isinstance(p, dict)
    ]

    summary = GroupSummary(
        id=group.get("id") or group.get("groupId") or "",
        name=group.get("subject") or group.get("name"),
        description=group.get("description") or group.get("desc"),
        creation=creation,
        participants=participants,
        picture_url=group.get("pictureUrl") or group.get("picture") or group.get("groupPicture"),
        announcement=bool(group["announcement"]) if group.get("announcement") is not None else None,
        locked=bool(group["locked"]) if group.get("locked") is not None else None,
    )
    return summary.model_dump(by_alias=True)


def map_participant(p: Dict[str, Any]) -> Dict[str, Any]:
    jid = p.get("id") or p.get("jid") or p.get("participant") or ""
    raw_phone = p.get("phoneNumber") or p.get("phone") or extract_phone_from_jid(jid)
    return {
        "id": jid,
        "name": p.get("name") or p.get("pushName") or p.get("notify") or "",
        "phone": format_phone_for_display(raw_phone),
        "isAdmin": bool(p.get("isAdmin") or p.get("admin")),
    }


class GroupService:
    """Group operations for one authenticated user"""

    def __init__(self, evolution_client, instance_resolver, cache, media_client=None, notifier=None):
        self.evolution = evolution_client
        self.instances = instance_resolver
        self.cache = cache
        self.media = media_client
        self.notifier = notifier

    # ────────────────────────────────────────────
    # Helpers
    # ────────────────────────────────────────────

    def _instance(self, instance_id: Optional[str], user_id: str) -> Dict[str, Any]:
        _require(instance_id, "Instance ID is required")
        instance = self.instances.resolve(instance_id, user_id)
        if not instance:
            raise not_found_error("Instance")
        return instance

    def _groups_changed(self, instance: Dict[str, Any], user_id: str) -> None:
        try:
            self.cache.invalidate(instance["instance_name"])
            if self.notifier:
                self.notifier(user_id, instance["id"])
        except Exception as e:
            log.error(f"❌ Failed to invalidate group cache / notify relay: {e}")

    def _call(self, default_message: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except AppError:
            raise
        except Exception as e:
            raise handle_controller_error(e, default_message)

    # ────────────────────────────────────────────
    # Queries
    # ────────────────────────────────────────────

    def list_groups(self, user_id: str, instance_id: Optional[str]) -> Dict[str, Any]:
        instance = self._instance(instance_id, user_id)
        name = instance["instance_name"]

        cached = self.cache.get(name)
        if cached is not None:
            return {"status": "success", "groups": cached, "count": len(cached), "cached": True}

        try:
            response = self.evolution.fetch_all_groups(name)
        except EvolutionAPIError as e:
            log.error(f"❌ Failed to fetch groups for {name}: {e}")
            if e.is_rate_limited:
                stale = self.cache.get_stale(name)
                if stale is not None:
                    return {"status": "success", "groups": stale, "count": len(stale), "cached": True}
                raise rate_limit_error("Rate limit exceeded. Wait a few seconds and try again.")
            return {"status": "success", "groups": [], "count": 0}

        items = response if isinstance(response, list) else (response or {}).get("groups") or []
        groups = [map_group(g) for g in items if isinstance(g, dict)]
        self.cache.set(name, groups)
        return {"status": "success", "groups": groups, "count": len(groups)}

    def get_participants(self, user_id: str, instance_id: Optional[str], group_id: Optional[str]) -> Dict[str, Any]:
        _require(instance_id, "Instance ID is required")
        _require(group_id, "Group ID is required")
        instance = self._instance(instance_id, user_id)

        response = self._call(
            "Failed to fetch group participants",
            self.evolution.fetch_participants, instance["instance_name"], group_id,
        )
        if isinstance(response, dict):
            items = response.get("participants") or []
        else:
            items = response or []
        return {
            "status": "success",
            "participants": [map_participant(p) for p in items if isinstance(p, dict)],
        }

    def get_invite_code(self, user_id: str, instance_id: Optional[str], group_id: Optional[str]) -> Dict[str, Any]:
        _require(instance_id, "Instance ID is required")
        _require(group_id, "Group ID is required")
        instance = self._instance(instance_id, user_id)

        response = self._call(
            "Failed to get invite code. Check that you are a group admin.",
            self.evolution.fetch_invite_code, instance["instance_name"], group_id,
        )
        data = response if isinstance(response, dict) else {}
        return {
            "status": "success",
            "code": data.get("code") or data.get("inviteCode") or "",
            "url": data.get("url") or data.get("inviteUrl") or "",
        }

    def validate_participants(self, user_id: str, instance_id: Optional[str], participants) -> Dict[str, Any]:
        _require(instance_id, "Instance ID is required")
        _check_participant_count(participants)
        instance = self._instance(instance_id, user_id)

        phones = normalize_phone_list(_participant_phones(participants))
        if not phones:
            raise validation_error("No valid phone numbers found")

        results = validate_phone_numbers(self.evolution, instance["instance_name"], phones)
        valid = [r for r in results if r.get("exists")]
        invalid = [r for r in results if not r.get("exists")]
        return {
            "status": "success",
            "valid": [{"phone": r.get("number"), "name": r.get("name")} for r in valid],
            "invalid": [{"phone": r.get("number"), "reason": "Number not found on WhatsApp"} for r in invalid],
            "validCount": len(valid),
            "invalidCount": len(invalid),
            "totalCount": len(results),
        }

    # ────────────────────────────────────────────
    # Mutations
    # ────────────────────────────────────────────

    def leave_group(self, user_id: str, instance_id: Optional[str], group_id: Optional[str]) -> Dict[str, Any]:
        _require(instance_id, "Instance ID is required")
        _require(group_id, "Group ID is required")
        instance = self._instance(instance_id, user_id)

        self._call(
            "Failed to leave group. Check that you are allowed to leave.",
            self.evolution.leave_group, instance["instance_name"], group_id,
        )
        self._groups_changed(instance, user_id)
        return {"status": "success", "message": "Left the group"}

    def create_group(
        self,
        user_id: str,
        instance_id: Optional[str],
        subject: Optional[str],
        description: Optional[str],
        participants,
    ) -> Dict[str, Any]:
        _require(instance_id, "Instance ID is required")
        _require(subject, "Group name is required")
        if not participants or not isinstance(participants, list):
            raise validation_error("Add at least one participant")
        _check_participant_count(participants)
        instance = self._instance(instance_id, user_id)

        phones = normalize_phone_list(_participant_phones(participants))
        if not phones:
            raise validation_error("No valid phone numbers found")

        response = self._call(
            "Failed to create group. Check the numbers and your permissions.",
            self.evolution.create_group,
            instance["instance_name"], subject.strip(), (description or "").strip(), phones,
        )
        self._groups_changed(instance, user_id)

        data = response if isinstance(response, dict) else {}
        return {
            "status": "success",
            "message": "Group created",
            "group": {
                "id": data.get("id") or data.get("groupId") or "",
                "name": data.get("subject") or subject,
                "description": data.get("description") or description,
            },
        }

    def update_picture(
        self,
        user_id: str,
        instance_id: Optional[str],
        group_id: Optional[str],
        content: Optional[bytes],
        filename: Optional[str],
        content_type: Optional[str],
    ) -> Dict[str, Any]:
        _require(instance_id, "Instance ID is required")
        _require(group_id, "Group ID is required")
        if not content:
            raise validation_error("Image is required")
        if content_type not in ALLOWED_PICTURE_TYPES:
            raise validation_error("Only images are allowed (JPEG, PNG, GIF, WEBP)")
        if len(content) > MAX_PICTURE_BYTES:
            raise validation_error("Image must be at most 5MB")
        instance = self._instance(instance_id, user_id)

        filename = filename or f"group-picture-{int(time.time() * 1000)}.{content_type.split('/')[1]}"
        uploaded = self.media.upload(content, filename, content_type) if self.media else None
        if not uploaded:
            raise validation_error("Failed to upload image")

        self._call(
            "Failed to update group picture. Check that you are a group admin.",
            self.evolution.update_group_picture, instance["instance_name"], group_id, uploaded["fullUrl"],
        )
        self._groups_changed(instance, user_id)
        return {"status": "success", "message": "Group picture updated", "imageUrl": uploaded["fullUrl"]}

    def update_subject(self, user_id: str, instance_id: Optional[str], group_id: Optional[str], subject: Optional[str]) -> Dict[str, Any]:
        _require(instance_id, "Instance ID is required")
        _require(group_id, "Group ID is required")
        _require(subject, "Group name is required")
        instance = self._instance(instance_id, user_id)

        self._call(
            "Failed to update group name. Check that you are a group admin.",
            self.evolution.update_group_subject, instance["instance_name"], group_id, subject.strip(),
        )
        self._groups_changed(instance, user_id)
        return {"status": "success", "message": "Group name updated"}

    def update_description(self, user_id: str, instance_id: Optional[str], group_id: Optional[str], description: Optional[str]) -> Dict[str, Any]:
        _require(instance_id, "Instance ID is required")
        _require(group_id, "Group ID is required")
        instance = self._instance(instance_id, user_id)

        self._call(
            "Failed to update group description. Check that you are a group admin.",
            self.evolution.update_group_description, instance["instance_name"], group_id, (description or "").strip(),
        )
        self._groups_changed(instance, user_id)
        return {"status": "success", "message": "Group description updated"}

    def update_settings(self, user_id: str, instance_id: Optional[str], group_id: Optional[str], action: Optional[str]) -> Dict[str, Any]:
        _require(instance_id, "Instance ID is required")
        _require(group_id, "Group ID is required")
        _require(action, "Action is required")
        if action not in GROUP_SETTING_ACTIONS:
            raise validation_error("Invalid action")
        instance = self._instance(instance_id, user_id)

        self._call(
            "Failed to update group settings",
            self.evolution.update_group_setting, instance["instance_name"], group_id, action,
        )
        self._groups_changed(instance, user_id)
        return {"status": "success", "message": "Group settings updated"}

    def mention_everyone(self, user_id: str, instance_id: Optional[str], group_id: Optional[str], text: Optional[str]) -> Dict[str, Any]:
        _require(instance_id, "Instance ID is required")
        _require(group_id, "Group ID is required")
        _require(text, "Message text is required")
        instance = self._instance(instance_id, user_id)

        self._call(
            "Failed to send message. Check your permissions in the group.",
            self.evolution.send_text, instance["instance_name"], group_id, text.strip(), mentions_everyone=True,
        )
        return {"status": "success", "message": "Message sent"}
