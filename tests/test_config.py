import pytest

from rehearsal.config import Config, get_config
from rehearsal.errors import ConfigurationError
from rehearsal.interview.models import ExperienceLevel, InterviewConfig, InterviewStyle

ENV_VARS = (
    "LLM_PROVIDER", "GOOGLE_CLOUD_PROJECT", "OPENAI_API_KEY", "QUESTION_MODE",
    "ANALYSIS_WORKERS", "LIVEKIT_API_KEY", "LIVEKIT_API_SECRET", "LIVEKIT_WS_URL",
    "PREFETCH_NEXT_QUESTION", "LLM_TIMEOUT", "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_vertex_requires_a_real_project(monkeypatch):
    with pytest.raises(ConfigurationError):
        get_config()

    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "rehearsal-dev")
    config = get_config()
    assert config.llm_provider == "vertex"
    assert config.google_cloud_project == "rehearsal-dev"
    assert config.question_mode == "fast"


def test_openai_provider_needs_key(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "openai")
    with pytest.raises(ConfigurationError):
        get_config()

    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    assert get_config().llm_provider == "openai"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "p")
    monkeypatch.setenv("QUESTION_MODE", "validated")
    monkeypatch.setenv("ANALYSIS_WORKERS", "2")
    monkeypatch.setenv("PREFETCH_NEXT_QUESTION", "false")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = get_config()
    assert config.question_mode == "validated"
    assert config.analysis_workers == 2
    assert config.prefetch_next_question is False
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize("name,value", [
    ("LLM_PROVIDER", "carrier-pigeon"),
    ("QUESTION_MODE", "thorough"),
    ("ANALYSIS_WORKERS", "0"),
    ("LLM_TIMEOUT", "soon"),
    ("LIVEKIT_WS_URL", "http://not-a-socket"),
])
def test_invalid_values_are_rejected(monkeypatch, name, value):
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "p")
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigurationError):
        get_config()


def test_rooms_enabled_only_with_all_credentials():
    assert not Config().rooms_enabled
    assert not Config(livekit_api_key="k", livekit_api_secret="s").rooms_enabled
    assert Config(livekit_api_key="k", livekit_api_secret="s", livekit_ws_url="wss://x").rooms_enabled


def test_interview_config_accepts_camel_case():
    config = InterviewConfig.from_dict({
        "topic": "  React  ",
        "style": "technical",
        "experienceLevel": "junior",
        "companyName": "Acme",
        "duration": 30,
    })

    assert config.topic == "React"
    assert config.style is InterviewStyle.TECHNICAL
    assert config.experience_level is ExperienceLevel.JUNIOR
    assert config.company_label == "Acme"
    assert config.to_prompt_dict()["experienceLevel"] == "junior"


def test_interview_config_accepts_snake_case_and_blank_company():
    config = InterviewConfig.from_dict({
        "topic": "Python", "style": "hr", "experience_level": "senior", "company_name": "  ", "duration": 45,
    })

    assert config.company_name is None
    assert config.company_label == "General"


@pytest.mark.parametrize("overrides", [
    {"topic": "   "},
    {"style": "interrogation"},
    {"experienceLevel": "intern"},
    {"duration": 0},
    {"duration": -10},
])
def test_invalid_interview_config(overrides):
    data = {"topic": "React", "style": "technical", "experienceLevel": "junior", "duration": 30}
    data.update(overrides)
    with pytest.raises(ConfigurationError):
        InterviewConfig.from_dict(data)


def test_interview_config_is_frozen(config):
    with pytest.raises(Exception):
        config.topic = "Vue"
