"""LLM provider clients."""

from .client import LLMClient, VertexRestClient, OpenAIRestClient, create_llm_client

__all__ = ["LLMClient", "VertexRestClient", "OpenAIRestClient", "create_llm_client"]
