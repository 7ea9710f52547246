"""
REST clients for LLM interactions.

Both clients expose ``call(messages, system_prompt) -> str`` and raise
LLMProviderError on transport failures and non-2xx responses.
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, List

import requests
import google.auth
import google.auth.transport.requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account

from ...config import (
    Config, VERTEX_LOCATION, MODEL_NAME, LLM_TIMEOUT, MAX_OUTPUT_TOKENS, TEMPERATURE,
    OPENAI_MODEL, OPENAI_BASE_URL,
)
from ...errors import ConfigurationError, LLMProviderError

logger = logging.getLogger("llm_client")

Message = Dict[str, str]


class LLMClient(ABC):
    """Minimal contract every language-model provider implements."""

    @abstractmethod
    def call(self, messages: List[Message], system_prompt: str = "") -> str:
        """Send an ordered list of {role, content} messages and return raw text."""

    def _post(self, url: str, headers: Dict[str, str], body: Dict[str, Any], timeout: int) -> Dict[str, Any]:
        try:
            resp = requests.post(url, headers=headers, json=body, timeout=timeout)
        except requests.RequestException as e:
            raise LLMProviderError(f"{type(self).__name__} transport error: {e}") from e

        if resp.status_code >= 400:
            raise LLMProviderError(
                f"{type(self).__name__} error {resp.status_code}: {resp.text[:500]}",
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as e:
            raise LLMProviderError(f"{type(self).__name__} returned non-JSON body: {resp.text[:200]}") from e


class VertexRestClient(LLMClient):
    """REST-based client for Vertex AI Gemini models."""

    def __init__(self,
                 project: str,
                 location: str = VERTEX_LOCATION,
                 model: str = MODEL_NAME,
                 credentials_json: Optional[str] = None,
                 timeout: int = LLM_TIMEOUT,
                 temperature: float = TEMPERATURE,
                 max_output_tokens: int = MAX_OUTPUT_TOKENS):
        self.project = project
        self.location = location
        self.model = model
        self.credentials_json = credentials_json
        self.base_url = f"https://{self.location}-aiplatform.googleapis.com/v1"
        self.model_resource = f"projects/{self.project}/locations/{self.location}/publishers/google/models/{self.model}"
        self._token = None
        self.timeout = timeout
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    def _refresh_token(self):
        """Refresh the OAuth token for API calls."""
        try:
            if self.credentials_json:
                creds = service_account.Credentials.from_service_account_file(
                    self.credentials_json,
                    scopes=["https://www.googleapis.com/auth/cloud-platform"],
                )
            else:
                creds, _ = google.auth.default(scopes=["https://www.googleapis.com/auth/cloud-platform"])

            auth_req = google.auth.transport.requests.Request()
            creds.refresh(auth_req)
        except (GoogleAuthError, OSError) as e:
            raise LLMProviderError(f"Vertex authentication failed: {e}") from e
        self._token = creds.token

    def _ensure_token(self):
        """Ensure we have a valid token, refreshing if needed."""
        if not self._token:
            self._refresh_token()

    def call(self, messages: List[Message], system_prompt: str = "") -> str:
        """Generate content using the Vertex AI REST API."""
        self._ensure_token()
        url = f"{self.base_url}/{self.model_resource}:generateContent"

        body: Dict[str, Any] = {
            "contents": [
                {
                    # Gemini only knows "user" and "model"
                    "role": "model" if m.get("role") == "assistant" else "user",
                    "parts": [{"text": m.get("content", "")}],
                }
                for m in messages
            ],
            "generationConfig": {
                "temperature": float(self.temperature),
                "maxOutputTokens": int(self.max_output_tokens),
            },
        }
        if system_prompt:
            body["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }

        try:
            resp_json = self._post(url, headers, body, self.timeout)
        except LLMProviderError as e:
            if e.status_code == 401:
                # Token expired; drop it so the next call refreshes
                self._token = None
            raise

        return self._parse_response_text(resp_json)

    def _parse_response_text(self, resp_json: Dict[str, Any]) -> str:
        """
        Parse response JSON to extract text content.
        Tries Vertex schema first, then falls back to alternatives.
        """
        # Vertex schema: candidates[0].content.parts[0].text
        cands = resp_json.get("candidates") or []
        if cands and isinstance(cands[0], dict):
            content = cands[0].get("content") or {}
            parts = content.get("parts") or []
            if isinstance(parts, list):
                texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
                if texts:
                    return "".join(texts)
            if isinstance(content, dict) and isinstance(content.get("text"), str):
                return content["text"]

        if isinstance(resp_json.get("text"), str):
            return resp_json["text"]

        # Last resort: return JSON for inspection
        logger.warning("Unexpected Vertex response shape, returning raw JSON")
        return json.dumps(resp_json, separators=(",", ":"))


class OpenAIRestClient(LLMClient):
    """REST client for OpenAI-compatible chat completion endpoints."""

    def __init__(self,
                 api_key: str,
                 model: str = OPENAI_MODEL,
                 base_url: str = OPENAI_BASE_URL,
                 timeout: int = LLM_TIMEOUT,
                 temperature: float = TEMPERATURE,
                 max_output_tokens: int = MAX_OUTPUT_TOKENS):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    def call(self, messages: List[Message], system_prompt: str = "") -> str:
        url = f"{self.base_url}/chat/completions"
        chat: List[Message] = []
        if system_prompt:
            chat.append({"role": "system", "content": system_prompt})
        chat.extend({"role": m.get("role", "user"), "content": m.get("content", "")} for m in messages)

        body = {
            "model": self.model,
            "messages": chat,
            "temperature": float(self.temperature),
            "max_tokens": int(self.max_output_tokens),
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        resp_json = self._post(url, headers, body, self.timeout)
        try:
            return resp_json["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError):
            logger.warning("Unexpected chat completion response shape, returning raw JSON")
            return json.dumps(resp_json, separators=(",", ":"))


def create_llm_client(config: Config) -> LLMClient:
    """Build the LLM client selected by configuration."""
    if config.llm_provider == "openai":
        if not config.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is required for the openai provider")
        logger.info(f"Using OpenAI-compatible provider: {config.openai_model} at {config.openai_base_url}")
        return OpenAIRestClient(
            api_key=config.openai_api_key,
            model=config.openai_model,
            base_url=config.openai_base_url,
            timeout=config.llm_timeout,
            temperature=config.temperature,
            max_output_tokens=config.max_output_tokens,
        )

    if config.llm_provider == "vertex":
        if not config.google_cloud_project:
            raise ConfigurationError("GOOGLE_CLOUD_PROJECT is required for the vertex provider")
        logger.info(f"Using Vertex AI provider: {config.model_name} in {config.vertex_location}")
        return VertexRestClient(
            project=config.google_cloud_project,
            location=config.vertex_location,
            model=config.model_name,
            credentials_json=config.google_application_credentials,
            timeout=config.llm_timeout,
            temperature=config.temperature,
            max_output_tokens=config.max_output_tokens,
        )

    raise ConfigurationError(f"Unknown LLM provider: {config.llm_provider}")
