"""Tests for the group participants webhook."""

from app.db.session import SessionLocal
from app.models.movement import GroupMovement
from conftest import GROUP_JID, INSTANCE_ID, INSTANCE_NAME, USER_ID

URL = f"/api/webhook/group-participants/{INSTANCE_NAME}"


def _event(participants, **data):
    payload = {"id": GROUP_JID, "participants": participants}
    payload.update(data)
    return {"event": "group-participants.update", "instance": INSTANCE_NAME, "data": payload}


def _movements():
    session = SessionLocal()
    try:
        return session.query(GroupMovement).order_by(GroupMovement.movement_type).all()
    finally:
        session.close()


def test_other_events_are_acknowledged_and_ignored(client, instance, dispatcher, webhook_service, monkeypatch):
    calls = []
    monkeypatch.setattr(webhook_service.movements, "create", lambda *a, **kw: calls.append(a))

    response = client.post(URL, json={"event": "messages.upsert", "data": {}})

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert calls == []
    assert dispatcher.submitted == []


def test_add_and_remove_produce_one_movement_and_dispatch_each(client, instance, evolution, dispatcher):
    evolution.responses["fetch_group_info"] = {"subject": "Clube", "desc": "Regras"}
    payload = _event(
        [
            {"id": "5562998448536@s.whatsapp.net", "action": "add", "phoneNumber": {"pushName": "Maria"}},
            {"id": "5511987654321@s.whatsapp.net", "action": "remove", "name": "João"},
        ],
        author="5562999990000@s.whatsapp.net",
        date_time="2024-05-01T12:00:00.000Z",
    )

    response = client.post(URL, json=payload)

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "message": "Webhook processed"}

    entered, left = _movements()
    assert entered.movement_type == "entered"
    assert entered.contact_phone == "5562998448536"
    assert entered.contact_name == "Maria"
    assert entered.group_name == "Clube"
    assert entered.user_id == USER_ID
    assert entered.instance_id == INSTANCE_ID
    assert entered.author_phone == "5562999990000"
    assert entered.timestamp.isoformat() == "2024-05-01T12:00:00"
    assert left.movement_type == "left"
    assert left.contact_phone == "5511987654321"

    kinds = sorted(item["kind"] for item in dispatcher.submitted)
    assert kinds == ["goodbye", "welcome"]
    welcome = next(item for item in dispatcher.submitted if item["kind"] == "welcome")
    assert welcome["contact_jid"] == "5562998448536@s.whatsapp.net"
    assert welcome["group_name"] == "Clube"
    assert welcome["group_description"] == "Regras"


def test_string_participants_use_event_action(client, instance, dispatcher):
    response = client.post(URL, json=_event(["5562998448536@s.whatsapp.net"], action="add"))

    assert response.status_code == 200
    (movement,) = _movements()
    assert movement.movement_type == "entered"
    assert [item["kind"] for item in dispatcher.submitted] == ["welcome"]


def test_unknown_actions_and_missing_ids_are_skipped(client, instance, dispatcher):
    payload = _event([
        {"id": "5562998448536@s.whatsapp.net", "action": "promote"},
        {"action": "add"},
    ])

    response = client.post(URL, json=payload)

    assert response.status_code == 200
    assert _movements() == []
    assert dispatcher.submitted == []


def test_invalid_payloads_are_acknowledged(client, instance, dispatcher):
    for payload in (
        {"event": "group-participants.update"},
        {"event": "group-participants.update", "data": {"id": GROUP_JID, "participants": []}},
        {"event": "group-participants.update", "data": {"participants": ["5562998448536@s.whatsapp.net"]}},
        ["not", "an", "object"],
    ):
        response = client.post(URL, json=payload)
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    assert dispatcher.submitted == []


def test_unparseable_body_is_acknowledged(client):
    response = client.post(URL, content=b"{not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_unknown_instance_is_acknowledged(client, dispatcher):
    response = client.post(
        "/api/webhook/group-participants/unknown",
        json=_event([{"id": "5562998448536@s.whatsapp.net", "action": "add"}]),
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Instance not found"
    assert dispatcher.submitted == []


def test_group_info_failure_does_not_stop_processing(client, instance, evolution, dispatcher):
    evolution.errors["fetch_group_info"] = RuntimeError("timeout")

    response = client.post(URL, json=_event([{"id": "5562998448536@s.whatsapp.net", "action": "add"}]))

    assert response.status_code == 200
    (movement,) = _movements()
    assert movement.group_name is None
    assert dispatcher.submitted[0]["group_name"] is None


def test_persistence_failure_still_dispatches(client, instance, dispatcher):
    payload = _event([
        {"id": "123@s.whatsapp.net", "action": "add"},
        {"id": "5562998448536@s.whatsapp.net", "action": "add"},
    ])

    response = client.post(URL, json=payload)

    assert response.status_code == 200
    (movement,) = _movements()
    assert movement.contact_phone == "5562998448536"
    assert len(dispatcher.submitted) == 2


def test_dispatcher_failure_is_swallowed(client, instance, dispatcher, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("queue full")

    monkeypatch.setattr(dispatcher, "submit", boom)

    response = client.post(URL, json=_event([{"id": "5562998448536@s.whatsapp.net", "action": "remove"}]))

    assert response.status_code == 200
    assert len(_movements()) == 1


def test_numeric_participant_name_is_recorded_as_text(client, instance, dispatcher):
    payload = _event([
        {"id": "5562998448536@s.whatsapp.net", "action": "add", "name": 12345},
        {"id": "5511987654321@s.whatsapp.net", "action": "add", "name": "Ana"},
    ])

    response = client.post(URL, json=payload)

    assert response.json()["message"] == "Webhook processed"
    names = sorted(movement.contact_name for movement in _movements())
    assert names == ["12345", "Ana"]
    assert len(dispatcher.submitted) == 2


def test_unusable_movement_fields_do_not_stop_later_participants(client, instance, dispatcher):
    payload = _event(
        [
            {"id": "5562998448536@s.whatsapp.net", "action": "add"},
            {"id": "5511987654321@s.whatsapp.net", "action": "remove"},
        ],
        id=12345,
    )

    response = client.post(URL, json=payload)

    assert response.json()["message"] == "Webhook processed"
    assert _movements() == []
    assert sorted(item["kind"] for item in dispatcher.submitted) == ["goodbye", "welcome"]


def test_malformed_participant_is_skipped(client, instance, dispatcher):
    payload = _event([
        {"id": "5562998448536@s.whatsapp.net", "action": ["add"]},
        {"id": "5511987654321@s.whatsapp.net", "action": "add"},
    ])

    response = client.post(URL, json=payload)

    assert response.json()["message"] == "Webhook processed"
    (movement,) = _movements()
    assert movement.contact_phone == "5511987654321"
    assert [item["kind"] for item in dispatcher.submitted] == ["welcome"]
