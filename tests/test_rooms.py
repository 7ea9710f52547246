import json
import time

import pytest

from rehearsal.config import Config
from rehearsal.errors import RoomProviderError
from rehearsal.infrastructure.rooms import LiveKitTokenProvider


@pytest.fixture
def provider():
    return LiveKitTokenProvider("api-key", "api-secret-for-tests", ws_url="wss://livekit.test")


def test_room_grant_tokens_are_signed(provider, config):
    grant = provider.create_room(config, "alice")

    assert grant.room_id.startswith("interview-")
    assert grant.ws_url == "wss://livekit.test"

    candidate = provider.validate_token(grant.participant_credential)
    assert candidate["valid"]
    payload = candidate["payload"]
    assert payload["iss"] == "api-key"
    assert payload["sub"] == "alice"
    assert payload["video"]["room"] == grant.room_id
    assert payload["video"]["roomJoin"] is True
    metadata = json.loads(payload["metadata"])
    assert metadata["role"] == "candidate"
    assert metadata["config"]["topic"] == "React"

    host = provider.validate_token(grant.host_credential)["payload"]
    assert host["name"] == "AI Interviewer"
    assert json.loads(host["metadata"])["isBot"] is True


def test_reconnect_credential_carries_session_metadata(provider, config):
    grant = provider.create_room(config, "alice")

    token = provider.issue_reconnect_credential(grant.room_id, "alice", {"sessionId": "s-1", "questionNumber": 3})

    payload = provider.validate_token(token)["payload"]
    metadata = json.loads(payload["metadata"])
    assert metadata["reconnection"] is True
    assert metadata["sessionId"] == "s-1"
    assert metadata["questionNumber"] == 3
    assert "reconnectedAt" in metadata


def test_token_from_another_secret_is_rejected(provider, config):
    other = LiveKitTokenProvider("api-key", "a-different-secret")
    token = other.create_room(config, "mallory").participant_credential

    result = provider.validate_token(token)

    assert not result["valid"]
    assert result["error"]


def test_expired_token_is_rejected(config):
    long_ago = LiveKitTokenProvider("api-key", "api-secret-for-tests", token_ttl_seconds=60,
                                    clock=lambda: time.time() - 3600)
    token = long_ago.create_room(config, "alice").participant_credential

    assert not long_ago.validate_token(token)["valid"]


def test_missing_credentials():
    with pytest.raises(RoomProviderError):
        LiveKitTokenProvider("", "secret")


def test_from_config_requires_all_settings():
    assert LiveKitTokenProvider.from_config(Config()) is None

    provider = LiveKitTokenProvider.from_config(
        Config(livekit_api_key="k", livekit_api_secret="s", livekit_ws_url="wss://x")
    )
    assert provider.ws_url == "wss://x"
