# app/services/auto_message_service.py
"""
Welcome/goodbye auto message configuration store.

A user has at most one row per group plus one global row (group_id NULL).
The effective configuration per message kind is the group row when it has
that kind enabled, else the global row when it has it enabled, else nothing.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.auto_message import GroupAutoMessage
from app.models.base import generate_id
from app.schemas.auto_message import AutoMessageUpsert

log = logging.getLogger("whatsgroups.auto_messages")

WELCOME = "welcome"
GOODBYE = "goodbye"
MESSAGE_KINDS = (WELCOME, GOODBYE)

_UPDATABLE_FIELDS = (
    "welcome_enabled",
    "welcome_message",
    "welcome_delay_seconds",
    "goodbye_enabled",
    "goodbye_message",
    "goodbye_delay_seconds",
)

_INSERT_DEFAULTS = {
    "welcome_enabled": False,
    "welcome_message": None,
    "welcome_delay_seconds": 0,
    "goodbye_enabled": False,
    "goodbye_message": None,
    "goodbye_delay_seconds": 0,
}


def _dialect_insert(db: Session):
    if db.bind.dialect.name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        from sqlalchemy.dialects.sqlite import insert
    return insert


def resolve_effective(
    group_row: Optional[GroupAutoMessage],
    global_row: Optional[GroupAutoMessage],
) -> Dict[str, Optional[GroupAutoMessage]]:
    """Pick the row that answers each message kind."""
    effective = {}
    for kind in MESSAGE_KINDS:
        flag = f"{kind}_enabled"
        if group_row is not None and getattr(group_row, flag):
            effective[kind] = group_row
        elif global_row is not None and getattr(global_row, flag):
            effective[kind] = global_row
        else:
            effective[kind] = None
    return effective


class AutoMessageService:
    """CRUD over GroupAutoMessage"""

    def upsert(self, db: Session, user_id: str, data: AutoMessageUpsert) -> GroupAutoMessage:
        """
        Insert or merge the row keyed by (user_id, group_id).

        On conflict only the supplied fields are written; omitted ones keep
        their stored value.
        """
        supplied = {
            field: value
            for field, value in data.model_dump(include=set(_UPDATABLE_FIELDS)).items()
            if value is not None
        }
        now = datetime.utcnow()
        group_id = data.group_id or None

        values = {
            **_INSERT_DEFAULTS,
            **supplied,
            "id": generate_id(),
            "user_id": user_id,
            "group_id": group_id,
            "created_at": now,
            "updated_at": now,
        }

        insert = _dialect_insert(db)
        stmt = insert(GroupAutoMessage).values(**values)
        if group_id is None:
            stmt = stmt.on_conflict_do_update(
                index_elements=[GroupAutoMessage.user_id],
                index_where=GroupAutoMessage.group_id.is_(None),
                set_={**supplied, "updated_at": now},
            )
        else:
            stmt = stmt.on_conflict_do_update(
                index_elements=[GroupAutoMessage.user_id, GroupAutoMessage.group_id],
                set_={**supplied, "updated_at": now},
            )

        db.execute(stmt)
        db.commit()

        row = self.get(db, user_id, group_id)
        log.info(f"💾 Auto message config saved for user={user_id} group={group_id or 'global'}")
        return row

    def get(self, db: Session, user_id: str, group_id: Optional[str]) -> Optional[GroupAutoMessage]:
        query = db.query(GroupAutoMessage).filter(GroupAutoMessage.user_id == user_id)
        if group_id is None:
            query = query.filter(GroupAutoMessage.group_id.is_(None))
        else:
            query = query.filter(GroupAutoMessage.group_id == group_id)
        return query.populate_existing().first()

    def get_effective(self, db: Session, user_id: str, group_id: str) -> Dict[str, Optional[GroupAutoMessage]]:
        """Effective welcome/goodbye configuration for one group."""
        group_row = self.get(db, user_id, group_id) if group_id else None
        global_row = self.get(db, user_id, None)
        return resolve_effective(group_row, global_row)

    def list(self, db: Session, user_id: str) -> List[GroupAutoMessage]:
        """All rows of a user, the global row first."""
        return (
            db.query(GroupAutoMessage)
            .filter(GroupAutoMessage.user_id == user_id)
            .order_by(GroupAutoMessage.group_id.is_(None).desc(), GroupAutoMessage.created_at.desc())
            .all()
        )

    def delete(self, db: Session, config_id: str, user_id: str) -> bool:
        deleted = (
            db.query(GroupAutoMessage)
            .filter(GroupAutoMessage.id == config_id, GroupAutoMessage.user_id == user_id)
            .delete(synchronize_session=False)
        )
        db.commit()
        if deleted:
            log.info(f"🗑️ Auto message config {config_id} deleted")
        return bool(deleted)
