"""
Instance lookup (instance id or name -> owning user).

Instances belong to the main backend; this service only reads them.
Lookups never raise: a missing, malformed or unreachable record is None.
"""
import logging
import re
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.instance import Instance

log = logging.getLogger("whatsgroups.instances")

OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


class InstanceResolver:
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def _lookup(self, *criteria) -> Optional[dict]:
        session = self.session_factory()
        try:
            instance = session.query(Instance).filter(*criteria).first()
            return instance.to_info() if instance else None
        except SQLAlchemyError as e:
            log.warning(f"⚠️ Instance lookup failed: {e}")
            return None
        finally:
            session.close()

    def resolve(self, instance_id: Optional[str], user_id: Optional[str]) -> Optional[dict]:
        """Instance `instance_id` if it belongs to `user_id`."""
        if not instance_id or not user_id or not OBJECT_ID_RE.match(instance_id):
            return None
        return self._lookup(Instance.id == instance_id, Instance.user_id == user_id)

    def resolve_by_name(self, instance_name: Optional[str]) -> Optional[dict]:
        """Instance by gateway name, any owner (used by webhooks)."""
        if not instance_name:
            return None
        return self._lookup(Instance.instance_name == instance_name)
