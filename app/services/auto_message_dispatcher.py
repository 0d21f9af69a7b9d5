# app/services/auto_message_dispatcher.py
"""
Welcome/goodbye sender.

Each dispatch runs on a background worker, detached from the webhook
request. It resolves the instance owner, picks the effective config,
renders the template, waits the configured delay and sends. Nothing is
retried and nothing is raised to the caller.
"""
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.core.config import DISPATCH_MAX_WORKERS
from app.services.auto_message_service import MESSAGE_KINDS, AutoMessageService
from app.utils.phone import extract_phone_from_jid, normalize_phone
from app.utils.variables import ContactData, GroupData, render_template

log = logging.getLogger("whatsgroups.webhook.dispatch")


class AutoMessageDispatcher:
    def __init__(
        self,
        evolution_client,
        instance_resolver,
        session_factory: Callable[[], Session],
        auto_messages: Optional[AutoMessageService] = None,
        max_workers: int = DISPATCH_MAX_WORKERS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.evolution = evolution_client
        self.instances = instance_resolver
        self.session_factory = session_factory
        self.auto_messages = auto_messages or AutoMessageService()
        self.sleep = sleep
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="auto-message")

    def submit(
        self,
        kind: str,
        instance_name: str,
        group_id: str,
        contact_jid: str,
        contact_name: Optional[str] = None,
        group_name: Optional[str] = None,
        group_description: Optional[str] = None,
    ) -> Optional[Future]:
        """Queue a dispatch and return immediately."""
        try:
            return self._executor.submit(
                self.dispatch, kind, instance_name, group_id, contact_jid,
                contact_name, group_name, group_description,
            )
        except RuntimeError as e:
            # executor already shut down
            log.error(f"❌ Could not queue {kind} message for {contact_jid}: {e}")
            return None

    def dispatch(
        self,
        kind: str,
        instance_name: str,
        group_id: str,
        contact_jid: str,
        contact_name: Optional[str] = None,
        group_name: Optional[str] = None,
        group_description: Optional[str] = None,
    ) -> bool:
        """Send one welcome/goodbye message. Returns True when a message was sent."""
        try:
            if kind not in MESSAGE_KINDS:
                log.warning(f"⚠️ Unknown auto message kind: {kind}")
                return False

            instance = self.instances.resolve_by_name(instance_name)
            if not instance:
                log.info(f"Instance {instance_name} not found, skipping {kind} message")
                return False

            session = self.session_factory()
            try:
                config = self.auto_messages.get_effective(session, instance["user_id"], group_id)[kind]
            finally:
                session.close()

            if config is None:
                log.debug(f"No {kind} message enabled for {group_id}")
                return False

            template = getattr(config, f"{kind}_message")
            if not template or not template.strip():
                log.debug(f"Empty {kind} template for {group_id}")
                return False

            raw_phone = extract_phone_from_jid(contact_jid)
            contact = ContactData(phone=normalize_phone(raw_phone) or raw_phone, name=contact_name)
            group = GroupData(id=group_id, name=group_name, description=group_description)
            text = render_template(template, contact, group)

            delay = getattr(config, f"{kind}_delay_seconds") or 0
            if delay > 0:
                log.debug(f"⏳ Waiting {delay}s before {kind} message to {contact_jid}")
                self.sleep(delay)

            self.evolution.send_text(instance_name, contact_jid, text)
            log.info(f"✅ {kind.capitalize()} message sent to {contact_jid} in {group_id}")
            return True

        except Exception as e:
            log.error(f"❌ Failed to send {kind} message to {contact_jid}: {e}")
            return False

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)
