"""
Rehearsal Configuration System
==============================

This file contains ALL configuration for the interview rehearsal system.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (technical defaults)

Every setting can be overridden with an environment variable of the same name.
"""
import os
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigurationError


# =============================================================================
# USER SETTINGS - Edit these to customize the rehearsal behavior
# =============================================================================

# LLM provider: "vertex" (Gemini on Vertex AI) or "openai" (any chat-completions API)
LLM_PROVIDER = "vertex"

# Vertex AI settings (required when LLM_PROVIDER is "vertex")
GOOGLE_CLOUD_PROJECT = "your-project-id"  # Change this!
GOOGLE_APPLICATION_CREDENTIALS = None  # Optional: path to credentials JSON

# OpenAI-compatible settings (required when LLM_PROVIDER is "openai")
OPENAI_API_KEY = None
OPENAI_MODEL = "gpt-4o-mini"
OPENAI_BASE_URL = "https://api.openai.com/v1"

# Question generation: "fast" (topic analysis + generation) or
# "validated" (plan, generate, validate, regenerate on rejection)
QUESTION_MODE = "fast"
PREFETCH_NEXT_QUESTION = True

# Analysis
ANALYSIS_WORKERS = 4

# Real-time media rooms (optional; text mode is used when unset)
LIVEKIT_API_KEY = None
LIVEKIT_API_SECRET = None
LIVEKIT_WS_URL = None

# Logging
WORKDIR = "./_rehearsal"
LOG_FILE = "./_rehearsal/rehearsal.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# LLM
VERTEX_LOCATION = "us-central1"
MODEL_NAME = "gemini-2.5-flash-lite"
LLM_TIMEOUT = 60
MAX_OUTPUT_TOKENS = 2048
TEMPERATURE = 0.7

# Question orchestration
MAX_QUESTION_REVISIONS = 2
MIN_QUESTION_LENGTH = 20

# Response normalizer
NORMALIZER_ERROR_THRESHOLD = 3
RAW_PREVIEW_CHARS = 500

# Rooms
ROOM_TOKEN_TTL_SECONDS = 6 * 60 * 60
ROOM_NAME_PREFIX = "interview"

VALID_PROVIDERS = ("vertex", "openai")
VALID_QUESTION_MODES = ("fast", "validated")


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    llm_provider: str = LLM_PROVIDER
    google_cloud_project: Optional[str] = None
    google_application_credentials: Optional[str] = None
    vertex_location: str = VERTEX_LOCATION
    model_name: str = MODEL_NAME
    openai_api_key: Optional[str] = None
    openai_model: str = OPENAI_MODEL
    openai_base_url: str = OPENAI_BASE_URL
    llm_timeout: int = LLM_TIMEOUT
    max_output_tokens: int = MAX_OUTPUT_TOKENS
    temperature: float = TEMPERATURE
    question_mode: str = QUESTION_MODE
    max_question_revisions: int = MAX_QUESTION_REVISIONS
    prefetch_next_question: bool = PREFETCH_NEXT_QUESTION
    analysis_workers: int = ANALYSIS_WORKERS
    livekit_api_key: Optional[str] = None
    livekit_api_secret: Optional[str] = None
    livekit_ws_url: Optional[str] = None
    room_token_ttl_seconds: int = ROOM_TOKEN_TTL_SECONDS
    workdir: str = WORKDIR
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL

    @property
    def rooms_enabled(self) -> bool:
        """True when all media room credentials are configured."""
        return bool(self.livekit_api_key and self.livekit_api_secret and self.livekit_ws_url)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


def get_config() -> Config:
    """Load configuration from module settings and environment variables."""
    provider = (os.getenv("LLM_PROVIDER") or LLM_PROVIDER).lower()
    if provider not in VALID_PROVIDERS:
        raise ConfigurationError(f"LLM_PROVIDER must be one of {VALID_PROVIDERS}, got {provider!r}")

    project = os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT
    credentials = os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or GOOGLE_APPLICATION_CREDENTIALS
    openai_key = os.getenv("OPENAI_API_KEY") or OPENAI_API_KEY

    if provider == "vertex" and (not project or project == "your-project-id"):
        raise ConfigurationError("Please set GOOGLE_CLOUD_PROJECT in config.py or as environment variable")
    if provider == "openai" and not openai_key:
        raise ConfigurationError("Please set OPENAI_API_KEY in config.py or as environment variable")

    question_mode = (os.getenv("QUESTION_MODE") or QUESTION_MODE).lower()
    if question_mode not in VALID_QUESTION_MODES:
        raise ConfigurationError(f"QUESTION_MODE must be one of {VALID_QUESTION_MODES}, got {question_mode!r}")

    analysis_workers = _env_int("ANALYSIS_WORKERS", ANALYSIS_WORKERS)
    if analysis_workers < 1:
        raise ConfigurationError("ANALYSIS_WORKERS must be at least 1")

    ws_url = os.getenv("LIVEKIT_WS_URL") or LIVEKIT_WS_URL
    if ws_url:
        ws_url = ws_url.strip().strip("'\"")
        if not ws_url.startswith(("ws://", "wss://")):
            raise ConfigurationError(f"LIVEKIT_WS_URL must start with ws:// or wss://, got {ws_url!r}")

    return Config(
        llm_provider=provider,
        google_cloud_project=project,
        google_application_credentials=credentials,
        vertex_location=os.getenv("VERTEX_LOCATION") or VERTEX_LOCATION,
        model_name=os.getenv("MODEL_NAME") or MODEL_NAME,
        openai_api_key=openai_key,
        openai_model=os.getenv("OPENAI_MODEL") or OPENAI_MODEL,
        openai_base_url=os.getenv("OPENAI_BASE_URL") or OPENAI_BASE_URL,
        llm_timeout=_env_int("LLM_TIMEOUT", LLM_TIMEOUT),
        question_mode=question_mode,
        max_question_revisions=_env_int("MAX_QUESTION_REVISIONS", MAX_QUESTION_REVISIONS),
        prefetch_next_question=_env_bool("PREFETCH_NEXT_QUESTION", PREFETCH_NEXT_QUESTION),
        analysis_workers=analysis_workers,
        livekit_api_key=os.getenv("LIVEKIT_API_KEY") or LIVEKIT_API_KEY,
        livekit_api_secret=os.getenv("LIVEKIT_API_SECRET") or LIVEKIT_API_SECRET,
        livekit_ws_url=ws_url,
        workdir=os.getenv("WORKDIR") or WORKDIR,
        log_file=os.getenv("LOG_FILE") or LOG_FILE,
        log_level=(os.getenv("LOG_LEVEL") or LOG_LEVEL).upper(),
    )
