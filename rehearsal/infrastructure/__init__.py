"""Infrastructure components for the rehearsal system.

This module contains the external collaborators the interview core talks to:
LLM REST clients and media room provisioning.
"""

# LLM infrastructure
from .llm import LLMClient, OpenAIRestClient, VertexRestClient, create_llm_client

# Room provisioning
from .rooms import LiveKitTokenProvider, RoomGrant, RoomProvider

__all__ = [
    # LLM clients
    "LLMClient", "VertexRestClient", "OpenAIRestClient", "create_llm_client",

    # Rooms
    "RoomProvider", "RoomGrant", "LiveKitTokenProvider"
]
