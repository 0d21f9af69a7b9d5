"""Tests for the outbound Evolution API client, number validation and the group cache."""

import json
from unittest.mock import MagicMock

import pytest
import requests
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.errors import EvolutionAPIError
from app.services.contact_validation import validate_phone_numbers
from app.services.evolution_client import EvolutionClient
from app.services.group_cache import GroupCache


def _response(status=200, body=None, reason="OK"):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.reason = reason
    response.text = json.dumps(body) if body is not None else ""
    response.json.return_value = body
    return response


# =============================================================================
# EvolutionClient
# =============================================================================

def test_request_sends_apikey_and_encodes_path():
    session = MagicMock()
    session.request.return_value = _response(body={"subject": "Clube"})
    client = EvolutionClient("http://evo.test/", "key", timeout=5, session=session)

    result = client.fetch_group_info("my inst", "123@g.us")

    assert result == {"subject": "Clube"}
    method, url = session.request.call_args.args
    assert method == "GET"
    assert url == "http://evo.test/group/fetchGroupInfo/my%20inst?groupJid=123%40g.us"
    assert session.request.call_args.kwargs["headers"]["apikey"] == "key"
    assert session.request.call_args.kwargs["timeout"] == 5


def test_send_text_with_mentions():
    session = MagicMock()
    session.request.return_value = _response(body={"key": {"id": "1"}})
    client = EvolutionClient("http://evo.test", "key", session=session)

    client.send_text("inst", "123@g.us", "Oi", mentions_everyone=True)

    assert session.request.call_args.kwargs["json"] == {"number": "123@g.us", "text": "Oi", "mentionsEveryOne": True}


def test_non_2xx_raises_with_details():
    session = MagicMock()
    session.request.return_value = _response(429, {"message": "rate-overlimit"}, reason="Too Many Requests")
    client = EvolutionClient("http://evo.test", "key", session=session)

    with pytest.raises(EvolutionAPIError) as exc_info:
        client.fetch_all_groups("inst")

    error = exc_info.value
    assert error.status_code == 429
    assert error.is_rate_limited
    assert "PATH: /group/fetchAllGroups/inst?getParticipants=true" in str(error)


def test_transport_errors_are_wrapped():
    session = MagicMock()
    session.request.side_effect = requests.exceptions.ConnectionError("refused")
    client = EvolutionClient("http://evo.test", "key", session=session)

    with pytest.raises(EvolutionAPIError):
        client.leave_group("inst", "123@g.us")


def test_missing_api_key_raises_before_request():
    session = MagicMock()
    client = EvolutionClient("http://evo.test", "", session=session)

    with pytest.raises(EvolutionAPIError):
        client.fetch_all_groups("inst")
    session.request.assert_not_called()


def test_non_json_body_returned_as_text():
    session = MagicMock()
    response = _response()
    response.text = "OK"
    response.json.side_effect = ValueError("no json")
    session.request.return_value = response
    client = EvolutionClient("http://evo.test", "key", session=session)

    assert client.update_group_subject("inst", "1@g.us", "Novo") == "OK"


# =============================================================================
# Number validation
# =============================================================================

class EndpointClient:
    def __init__(self, answers):
        self.answers = answers
        self.endpoints = []

    def check_numbers(self, instance_name, numbers, endpoint):
        self.endpoints.append(endpoint)
        answer = self.answers.get(endpoint)
        if isinstance(answer, Exception):
            raise answer
        return answer


def test_validation_falls_back_on_404():
    client = EndpointClient({
        "/chat/whatsappNumbers": EvolutionAPIError("HTTP 404 Not Found", status_code=404),
        "/misc/check-number-status": [{"number": "5562998448536", "exists": True}],
    })

    results = validate_phone_numbers(client, "inst", ["62998448536"])

    assert results == [{"number": "5562998448536", "exists": True}]
    assert client.endpoints == ["/chat/whatsappNumbers", "/misc/check-number-status"]


def test_validation_without_endpoints_returns_empty():
    not_found = EvolutionAPIError("HTTP 404 Not Found", status_code=404)
    client = EndpointClient({
        "/chat/whatsappNumbers": not_found,
        "/misc/check-number-status": not_found,
        "/chat/checkNumber": not_found,
    })

    assert validate_phone_numbers(client, "inst", ["62998448536"]) == []
    assert len(client.endpoints) == 3


def test_validation_other_errors_return_empty():
    client = EndpointClient({"/chat/whatsappNumbers": EvolutionAPIError("HTTP 500", status_code=500)})
    assert validate_phone_numbers(client, "inst", ["62998448536"]) == []
    assert client.endpoints == ["/chat/whatsappNumbers"]


def test_validation_skips_call_without_valid_numbers():
    client = EndpointClient({})
    assert validate_phone_numbers(client, "inst", ["123"]) == []
    assert client.endpoints == []


# =============================================================================
# GroupCache
# =============================================================================

def test_cache_without_client_is_noop():
    cache = GroupCache(None)
    cache.set("inst", [{"id": "1"}])
    assert cache.get("inst") is None
    cache.invalidate("inst")


def test_cache_set_get_and_invalidate(fake_redis):
    cache = GroupCache(fake_redis, ttl_seconds=30, stale_ttl_seconds=600)

    cache.set("inst", [{"id": "1"}])
    assert cache.get("inst") == [{"id": "1"}]
    assert cache.get_stale("inst") == [{"id": "1"}]
    assert fake_redis.ttls == {"groups:inst": 30, "groups:inst:stale": 600}

    cache.invalidate("inst")
    assert cache.get("inst") is None
    assert cache.get_stale("inst") is None


def test_cache_errors_read_as_miss():
    broken = MagicMock()
    broken.get.side_effect = RedisConnectionError("down")
    broken.setex.side_effect = RedisConnectionError("down")
    cache = GroupCache(broken)

    assert cache.get("inst") is None
    cache.set("inst", [])


def test_cache_ignores_corrupt_entries(fake_redis):
    fake_redis.store["groups:inst"] = "{not json"
    assert GroupCache(fake_redis).get("inst") is None
