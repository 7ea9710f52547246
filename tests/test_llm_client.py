from unittest.mock import Mock, patch

import pytest
import requests

from rehearsal.config import Config
from rehearsal.errors import ConfigurationError, LLMProviderError
from rehearsal.infrastructure.llm import (
    OpenAIRestClient,
    VertexRestClient,
    create_llm_client,
)

POST = "rehearsal.infrastructure.llm.client.requests.post"


def http_response(status_code=200, body=None, text=""):
    resp = Mock()
    resp.status_code = status_code
    resp.text = text
    resp.json.return_value = body if body is not None else {}
    return resp


class TestOpenAIRestClient:

    def test_system_prompt_is_sent_first(self):
        client = OpenAIRestClient(api_key="sk-test", base_url="https://llm.test/v1/")
        body = {"choices": [{"message": {"content": '{"ok": true}'}}]}

        with patch(POST, return_value=http_response(body=body)) as post:
            text = client.call([{"role": "user", "content": "hi"}], "be terse")

        assert text == '{"ok": true}'
        url = post.call_args.args[0]
        sent = post.call_args.kwargs["json"]
        assert url == "https://llm.test/v1/chat/completions"
        assert sent["messages"][0] == {"role": "system", "content": "be terse"}
        assert sent["messages"][1] == {"role": "user", "content": "hi"}
        assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer sk-test"

    def test_http_error_raises_provider_error(self):
        client = OpenAIRestClient(api_key="sk-test")

        with patch(POST, return_value=http_response(503, text="overloaded")):
            with pytest.raises(LLMProviderError) as exc_info:
                client.call([{"role": "user", "content": "hi"}])

        assert exc_info.value.status_code == 503

    def test_transport_error_raises_provider_error(self):
        client = OpenAIRestClient(api_key="sk-test")

        with patch(POST, side_effect=requests.ConnectionError("refused")):
            with pytest.raises(LLMProviderError):
                client.call([{"role": "user", "content": "hi"}])

    def test_unexpected_shape_returns_raw_json(self):
        client = OpenAIRestClient(api_key="sk-test")

        with patch(POST, return_value=http_response(body={"weird": 1})):
            assert client.call([{"role": "user", "content": "hi"}]) == '{"weird":1}'


class TestVertexRestClient:

    @pytest.fixture
    def client(self):
        client = VertexRestClient(project="rehearsal-dev")
        client._token = "cached-token"
        return client

    def test_parts_are_joined(self, client):
        body = {"candidates": [{"content": {"parts": [{"text": '{"a": '}, {"text": "1}"}]}}]}

        with patch(POST, return_value=http_response(body=body)) as post:
            text = client.call([{"role": "user", "content": "hi"}, {"role": "assistant", "content": "yo"}],
                               "system text")

        assert text == '{"a": 1}'
        sent = post.call_args.kwargs["json"]
        assert [c["role"] for c in sent["contents"]] == ["user", "model"]
        assert sent["systemInstruction"] == {"parts": [{"text": "system text"}]}
        assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer cached-token"

    def test_unauthorized_drops_token(self, client):
        with patch(POST, return_value=http_response(401, text="expired")):
            with pytest.raises(LLMProviderError):
                client.call([{"role": "user", "content": "hi"}])

        assert client._token is None


def test_create_llm_client_selects_provider():
    assert isinstance(create_llm_client(Config(llm_provider="openai", openai_api_key="sk")), OpenAIRestClient)
    assert isinstance(create_llm_client(Config(llm_provider="vertex", google_cloud_project="p")), VertexRestClient)


@pytest.mark.parametrize("config", [
    Config(llm_provider="openai"),
    Config(llm_provider="vertex"),
    Config(llm_provider="smoke-signals"),
])
def test_create_llm_client_rejects_incomplete_config(config):
    with pytest.raises(ConfigurationError):
        create_llm_client(config)
