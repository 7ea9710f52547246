"""
Real-time media room provisioning.

The session manager treats rooms as opaque: it only needs a room id and
signed credentials for the candidate and the interviewer bot. Credentials are
LiveKit-compatible HS256 access tokens signed with python-jose.
"""
import json
import logging
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from jose import JWTError, jwt

from ..config import Config, ROOM_TOKEN_TTL_SECONDS, ROOM_NAME_PREFIX
from ..errors import RoomProviderError

logger = logging.getLogger("rooms")

TOKEN_ALGORITHM = "HS256"


@dataclass(frozen=True)
class RoomGrant:
    """Everything a client needs to join a freshly created room."""
    room_id: str
    participant_credential: str
    host_credential: str
    ws_url: Optional[str] = None


class RoomProvider(ABC):
    """External collaborator that provisions rooms and issues credentials."""

    @abstractmethod
    def create_room(self, config, participant_name: str) -> RoomGrant:
        """Create a room for an interview and credentials for both sides."""

    @abstractmethod
    def issue_reconnect_credential(self, room_id: str, participant_name: str,
                                   metadata: Optional[Dict[str, Any]] = None) -> str:
        """Issue a fresh participant credential for an existing room."""


class LiveKitTokenProvider(RoomProvider):
    """Signs LiveKit access tokens locally; rooms are created on first join."""

    def __init__(self,
                 api_key: str,
                 api_secret: str,
                 ws_url: Optional[str] = None,
                 token_ttl_seconds: int = ROOM_TOKEN_TTL_SECONDS,
                 clock: Callable[[], float] = time.time):
        if not api_key or not api_secret:
            raise RoomProviderError("LiveKit API key and secret are required")
        self.api_key = api_key
        self.api_secret = api_secret
        self.ws_url = ws_url
        self.token_ttl_seconds = token_ttl_seconds
        self._clock = clock

    @classmethod
    def from_config(cls, config: Config) -> Optional["LiveKitTokenProvider"]:
        """Build a provider when credentials are configured, else None (text mode)."""
        if not config.rooms_enabled:
            logger.info("LiveKit credentials not configured; rooms disabled")
            return None
        return cls(
            api_key=config.livekit_api_key,
            api_secret=config.livekit_api_secret,
            ws_url=config.livekit_ws_url,
            token_ttl_seconds=config.room_token_ttl_seconds,
        )

    def generate_access_token(self,
                              room_id: str,
                              identity: str,
                              name: Optional[str] = None,
                              metadata: Optional[Dict[str, Any]] = None) -> str:
        """Sign a room-join token for one participant."""
        now = int(self._clock())
        claims = {
            "iss": self.api_key,
            "sub": identity,
            "name": name or identity,
            "nbf": now,
            "exp": now + self.token_ttl_seconds,
            "metadata": json.dumps(metadata or {}, default=str),
            "video": {
                "roomJoin": True,
                "room": room_id,
                "canPublish": True,
                "canSubscribe": True,
                "canPublishData": True,
                "canUpdateOwnMetadata": True,
            },
        }
        try:
            token = jwt.encode(claims, self.api_secret, algorithm=TOKEN_ALGORITHM)
        except JWTError as e:
            raise RoomProviderError(f"Failed to generate access token: {e}") from e
        logger.debug(f"Issued token for {identity} in room {room_id}")
        return token

    def create_room(self, config, participant_name: str) -> RoomGrant:
        now_ms = int(self._clock() * 1000)
        room_id = f"{ROOM_NAME_PREFIX}-{now_ms}-{uuid.uuid4().hex[:9]}"
        config_data = config.to_prompt_dict() if hasattr(config, "to_prompt_dict") else config

        participant_token = self.generate_access_token(
            room_id,
            participant_name,
            metadata={
                "role": "candidate",
                "config": config_data,
                "joinedAt": _utc_now_iso(),
            },
        )
        interviewer_token = self.generate_access_token(
            room_id,
            f"ai-interviewer-{now_ms}",
            name="AI Interviewer",
            metadata={"role": "interviewer", "config": config_data, "isBot": True},
        )

        logger.info(f"Created interview room {room_id} for {participant_name}")
        return RoomGrant(
            room_id=room_id,
            participant_credential=participant_token,
            host_credential=interviewer_token,
            ws_url=self.ws_url,
        )

    def issue_reconnect_credential(self, room_id: str, participant_name: str,
                                   metadata: Optional[Dict[str, Any]] = None) -> str:
        merged = {"role": "candidate", "reconnection": True}
        merged.update(metadata or {})
        merged["reconnectedAt"] = _utc_now_iso()
        return self.generate_access_token(room_id, participant_name, metadata=merged)

    def validate_token(self, token: str) -> Dict[str, Any]:
        """Verify a token signed by this provider."""
        try:
            payload = jwt.decode(token, self.api_secret, algorithms=[TOKEN_ALGORITHM], issuer=self.api_key)
        except JWTError as e:
            return {"valid": False, "error": str(e)}
        return {"valid": True, "payload": payload}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
