# app/services/webhook_service.py
"""
Inbound `group-participants.update` webhook processing.

process() never raises: the gateway must always get a success answer so
it doesn't retry. Each participant is persisted and dispatched on its own;
one failure never stops the loop.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.logging_config import get_webhook_logger
from app.models.movement import MOVEMENT_ENTERED, MOVEMENT_LEFT
from app.schemas.movement import MovementCreate
from app.services.auto_message_service import GOODBYE, WELCOME
from app.services.movement_service import MovementService
from app.utils.phone import extract_phone_from_jid, normalize_phone

log = get_webhook_logger()

GROUP_PARTICIPANTS_EVENT = "group-participants.update"

# gateway action -> (movement type, auto message kind)
ACTIONS = {
    "add": (MOVEMENT_ENTERED, WELCOME),
    "remove": (MOVEMENT_LEFT, GOODBYE),
}


def _parse_event_time(value) -> datetime:
    """Event time as naive UTC; now when absent or unparsable."""
    if isinstance(value, (int, float)):
        # epoch seconds or milliseconds
        seconds = value / 1000 if value > 1e12 else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return datetime.utcnow()
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed
    return datetime.utcnow()


def _participant_fields(participant, default_action) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """(jid, action, name) from a string JID or a participant object."""
    if isinstance(participant, str):
        return participant, default_action, None
    if not isinstance(participant, dict):
        return None, None, None

    jid = participant.get("id") or participant.get("jid")
    action = participant.get("action") or default_action
    phone_number = participant.get("phoneNumber")
    push_name = phone_number.get("pushName") if isinstance(phone_number, dict) else None
    name = push_name or participant.get("name") or participant.get("pushName")
    if isinstance(name, (int, float)) and not isinstance(name, bool):
        name = str(name)
    elif not isinstance(name, str):
        name = None
    return jid, action, name


class WebhookService:
    def __init__(
        self,
        evolution_client,
        instance_resolver,
        dispatcher,
        session_factory: Callable[[], Session],
        movements: Optional[MovementService] = None,
    ):
        self.evolution = evolution_client
        self.instances = instance_resolver
        self.dispatcher = dispatcher
        self.session_factory = session_factory
        self.movements = movements or MovementService()

    def _fetch_group_info(self, instance_name: str, group_id: str) -> Tuple[Optional[str], Optional[str]]:
        try:
            info = self.evolution.fetch_group_info(instance_name, group_id)
        except Exception as e:
            log.warning(f"⚠️ Could not fetch group info for {group_id}: {e}")
            return None, None
        if not isinstance(info, dict):
            return None, None
        data = info.get("data") if isinstance(info.get("data"), dict) else info
        return data.get("subject"), data.get("desc") or data.get("description")

    def process(self, instance_name: str, payload: Any) -> str:
        """Handle one webhook delivery. Returns the acknowledgement message."""
        try:
            return self._process(instance_name, payload)
        except Exception as e:
            log.exception(f"❌ Webhook processing failed for {instance_name}: {e}")
            return "Error processed"

    def _process(self, instance_name: str, payload: Any) -> str:
        event = payload.get("event") if isinstance(payload, dict) else None
        if event != GROUP_PARTICIPANTS_EVENT:
            log.debug(f"Ignoring event {event}")
            return "Event not processed"

        data = payload.get("data")
        if (
            not isinstance(data, dict)
            or not data.get("id")
            or not isinstance(data.get("participants"), list)
            or not data["participants"]
        ):
            log.warning(f"⚠️ Invalid participants payload from {instance_name}")
            return "Invalid data"

        group_id = data["id"]
        instance = self.instances.resolve_by_name(instance_name)
        if not instance:
            log.warning(f"⚠️ Webhook for unknown instance {instance_name}")
            return "Instance not found"

        group_name, group_description = self._fetch_group_info(instance_name, group_id)
        author_phone = extract_phone_from_jid(data.get("author") or "") or None
        timestamp = _parse_event_time(data.get("date_time"))

        log.info(
            f"📥 {GROUP_PARTICIPANTS_EVENT} instance={instance_name} group={group_id} "
            f"participants={len(data['participants'])}"
        )

        for participant in data["participants"]:
            try:
                self._handle_participant(
                    instance, instance_name, group_id, participant, data.get("action"),
                    group_name, group_description, author_phone, timestamp,
                )
            except Exception as e:
                log.error(f"❌ Failed to process participant {participant!r} in {group_id}: {e}")

        return "Webhook processed"

    def _handle_participant(
        self,
        instance: Dict[str, Any],
        instance_name: str,
        group_id: str,
        participant,
        default_action,
        group_name: Optional[str],
        group_description: Optional[str],
        author_phone: Optional[str],
        timestamp: datetime,
    ) -> None:
        jid, action, name = _participant_fields(participant, default_action)
        if not jid:
            return
        if action not in ACTIONS:
            log.debug(f"Skipping participant {jid} with action {action!r}")
            return

        movement_type, kind = ACTIONS[action]
        raw_phone = extract_phone_from_jid(jid)
        self._record(
            user_id=str(instance["user_id"]),
            instance_id=str(instance["id"]),
            group_id=group_id,
            group_name=group_name,
            contact_phone=normalize_phone(raw_phone) or raw_phone,
            contact_name=name,
            movement_type=movement_type,
            author_phone=author_phone,
            timestamp=timestamp,
        )

        try:
            self.dispatcher.submit(kind, instance_name, group_id, jid, name, group_name, group_description)
        except Exception as e:
            log.error(f"❌ Could not queue {kind} message for {jid}: {e}")

    def _record(self, **fields) -> None:
        session = self.session_factory()
        try:
            self.movements.create(session, MovementCreate(**fields))
        except Exception as e:
            session.rollback()
            log.error(f"❌ Failed to record movement for {fields.get('contact_phone')}: {e}")
        finally:
            session.close()
