"""Tests for the welcome/goodbye dispatcher."""

import pytest

from app.db.session import SessionLocal
from app.schemas.auto_message import AutoMessageUpsert
from app.services.auto_message_dispatcher import AutoMessageDispatcher
from app.services.auto_message_service import AutoMessageService
from conftest import GROUP_JID, INSTANCE_NAME, USER_ID

CONTACT_JID = "5562998448536@s.whatsapp.net"


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def dispatcher(evolution, resolver, sleeps):
    d = AutoMessageDispatcher(evolution, resolver, SessionLocal, max_workers=2, sleep=sleeps.append)
    yield d
    d.shutdown(wait=True)


def _configure(db, **fields):
    AutoMessageService().upsert(db, USER_ID, AutoMessageUpsert(**fields))


def test_welcome_is_rendered_and_sent(db, instance, evolution, dispatcher, sleeps):
    _configure(db, group_id=GROUP_JID, welcome_enabled=True, welcome_message="Oi $firstName, bem-vindo ao $groupName")

    sent = dispatcher.dispatch("welcome", INSTANCE_NAME, GROUP_JID, CONTACT_JID, "Maria Silva", "Clube", None)

    assert sent is True
    (name, args, kwargs), = evolution.calls_to("send_text")
    assert args == (INSTANCE_NAME, CONTACT_JID, "Oi Maria, bem-vindo ao Clube")
    assert sleeps == []


def test_delay_is_applied(db, instance, evolution, dispatcher, sleeps):
    _configure(db, goodbye_enabled=True, goodbye_message="Tchau $name", goodbye_delay_seconds=7)

    assert dispatcher.dispatch("goodbye", INSTANCE_NAME, GROUP_JID, CONTACT_JID) is True
    assert sleeps == [7]
    (_, args, _), = evolution.calls_to("send_text")
    assert args[2] == "Tchau Cliente"


def test_unknown_instance_aborts_silently(db, evolution, dispatcher):
    _configure(db, welcome_enabled=True, welcome_message="Oi")
    assert dispatcher.dispatch("welcome", "missing", GROUP_JID, CONTACT_JID) is False
    assert evolution.calls_to("send_text") == []


def test_disabled_config_sends_nothing(db, instance, evolution, dispatcher):
    _configure(db, group_id=GROUP_JID, welcome_enabled=False, welcome_message="Oi")
    assert dispatcher.dispatch("welcome", INSTANCE_NAME, GROUP_JID, CONTACT_JID) is False
    assert evolution.calls_to("send_text") == []


def test_empty_template_sends_nothing(db, instance, evolution, dispatcher):
    _configure(db, welcome_enabled=True, welcome_message="   ")
    assert dispatcher.dispatch("welcome", INSTANCE_NAME, GROUP_JID, CONTACT_JID) is False
    assert evolution.calls_to("send_text") == []


def test_send_failure_is_swallowed(db, instance, evolution, dispatcher):
    _configure(db, welcome_enabled=True, welcome_message="Oi")
    evolution.errors["send_text"] = RuntimeError("gateway down")

    assert dispatcher.dispatch("welcome", INSTANCE_NAME, GROUP_JID, CONTACT_JID) is False
    assert len(evolution.calls_to("send_text")) == 1


def test_submit_runs_in_background(db, instance, evolution, dispatcher):
    _configure(db, welcome_enabled=True, welcome_message="Oi $firstName")

    future = dispatcher.submit("welcome", INSTANCE_NAME, GROUP_JID, CONTACT_JID, "Ana")

    assert future.result(timeout=5) is True
    assert len(evolution.calls_to("send_text")) == 1


def test_submit_after_shutdown_returns_none(evolution, resolver):
    d = AutoMessageDispatcher(evolution, resolver, SessionLocal, max_workers=1)
    d.shutdown(wait=True)
    assert d.submit("welcome", INSTANCE_NAME, GROUP_JID, CONTACT_JID) is None


def test_dispatcher_handle_is_built_once_under_concurrency(monkeypatch):
    import threading
    import time

    import app.services as services

    built = []

    class SlowDispatcher:
        def __init__(self, *args, **kwargs):
            time.sleep(0.05)
            built.append(self)

        def shutdown(self, wait=False):
            pass

    monkeypatch.setattr(services, "_dispatcher", None)
    monkeypatch.setattr(services, "AutoMessageDispatcher", SlowDispatcher)

    results = []
    threads = [
        threading.Thread(target=lambda: results.append(services.get_auto_message_dispatcher()))
        for _ in range(8)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(built) == 1
    assert all(result is built[0] for result in results)

    services.shutdown_services()
    assert services._dispatcher is None
