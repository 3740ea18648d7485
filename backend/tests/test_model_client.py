"""Unit tests for the model clients. No real network access."""

import base64
import json
from types import SimpleNamespace
from unittest.mock import patch

import httpx
import pytest
from google.api_core import exceptions as google_exceptions

from winesnap.config import Settings
from winesnap.errors import MissingCredentialError, ProviderError
from winesnap.models.label import EncodedImage
from winesnap.services.model_client import (
    AnthropicClient,
    GeminiClient,
    _response_text,
    build_model_client,
)


def _recording_client(response_factory):
    seen = []

    def handler(request):
        seen.append(request)
        return response_factory(request)

    return httpx.Client(transport=httpx.MockTransport(handler)), seen


def _ok(*blocks):
    return lambda request: httpx.Response(200, json={"content": list(blocks)})


class TestAnthropicClient:
    def test_missing_key_fails_before_any_request(self):
        http, seen = _recording_client(_ok({"type": "text", "text": "x"}))
        with pytest.raises(MissingCredentialError):
            AnthropicClient("", "claude-sonnet-4-5", http_client=http)
        assert seen == []

    def test_request_shape_with_image(self):
        http, seen = _recording_client(_ok({"type": "text", "text": '{"a": 1}'}))
        client = AnthropicClient("sk-test", "claude-sonnet-4-5", http_client=http)

        out = client.complete("read it", image=EncodedImage(data="QUJD", media_type="image/jpeg"), max_tokens=900)

        assert out == '{"a": 1}'
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "sk-test"
        assert request.headers["anthropic-version"] == "2023-06-01"

        body = json.loads(request.content)
        assert body["model"] == "claude-sonnet-4-5"
        assert body["max_tokens"] == 900
        content = body["messages"][0]["content"]
        assert body["messages"][0]["role"] == "user"
        assert content[0] == {
            "type": "image",
            "source": {"type": "base64", "media_type": "image/jpeg", "data": "QUJD"},
        }
        assert content[1] == {"type": "text", "text": "read it"}

    def test_text_only_request(self):
        http, seen = _recording_client(_ok({"type": "text", "text": "ok"}))
        client = AnthropicClient("sk-test", "m", http_client=http)
        client.complete("hello")
        content = json.loads(seen[0].content)["messages"][0]["content"]
        assert content == [{"type": "text", "text": "hello"}]

    def test_returns_first_text_block(self):
        http, _ = _recording_client(
            _ok(
                {"type": "tool_use", "id": "t1", "name": "x", "input": {}},
                {"type": "text", "text": "first"},
                {"type": "text", "text": "second"},
            )
        )
        assert AnthropicClient("k", "m", http_client=http).complete("p") == "first"

    def test_no_text_block_gives_empty_string(self):
        http, _ = _recording_client(_ok())
        assert AnthropicClient("k", "m", http_client=http).complete("p") == ""

    def test_custom_base_url(self):
        http, seen = _recording_client(_ok({"type": "text", "text": "ok"}))
        AnthropicClient("k", "m", base_url="http://proxy.local/", http_client=http).complete("p")
        assert str(seen[0].url) == "http://proxy.local/v1/messages"

    def test_non_success_status_raises_with_body(self):
        body = '{"type":"error","error":{"type":"invalid_request_error","message":"image too large"}}'
        http, _ = _recording_client(lambda request: httpx.Response(400, text=body))
        client = AnthropicClient("k", "m", http_client=http)

        with pytest.raises(ProviderError) as excinfo:
            client.complete("p")

        assert excinfo.value.status_code == 400
        assert excinfo.value.body == body
        assert "image too large" in str(excinfo.value)

    def test_network_error_propagates(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = AnthropicClient("k", "m", http_client=httpx.Client(transport=httpx.MockTransport(handler)))
        with pytest.raises(httpx.ConnectError):
            client.complete("p")

    def test_injected_http_client_is_not_closed(self):
        http, _ = _recording_client(_ok())
        with AnthropicClient("k", "m", http_client=http):
            pass
        assert not http.is_closed


class TestGeminiClient:
    def test_missing_key(self):
        with pytest.raises(MissingCredentialError) as excinfo:
            GeminiClient("")
        assert excinfo.value.env_var == "GEMINI_API_KEY"

    @patch("winesnap.services.model_client.genai")
    def test_sends_image_bytes_and_prompt(self, mock_genai):
        mock_model = mock_genai.GenerativeModel.return_value
        mock_model.generate_content.return_value = SimpleNamespace(text=' {"a": 1} ')

        client = GeminiClient("g-key", "gemini-1.5-flash")
        out = client.complete("read it", image=EncodedImage(data=base64.b64encode(b"jpegbytes").decode()), max_tokens=900)

        assert out == '{"a": 1}'
        mock_genai.configure.assert_called_once_with(api_key="g-key")
        args, kwargs = mock_genai.GenerativeModel.call_args
        assert args[0] == "gemini-1.5-flash"
        assert kwargs["generation_config"]["max_output_tokens"] == 900
        parts = mock_model.generate_content.call_args[0][0]
        assert parts == [{"mime_type": "image/jpeg", "data": b"jpegbytes"}, "read it"]

    @patch("winesnap.services.model_client.genai")
    def test_api_error_becomes_provider_error(self, mock_genai):
        mock_genai.GenerativeModel.return_value.generate_content.side_effect = google_exceptions.InvalidArgument(
            "API key not valid"
        )
        with pytest.raises(ProviderError) as excinfo:
            GeminiClient("g-key").complete("p")
        assert excinfo.value.status_code == 400
        assert "API key not valid" in excinfo.value.body


    @patch("winesnap.services.model_client.genai")
    def test_each_client_applies_its_own_key(self, mock_genai):
        mock_genai.GenerativeModel.return_value.generate_content.return_value = SimpleNamespace(text="{}")
        first = GeminiClient("key-one")
        second = GeminiClient("key-two")

        second.complete("p")
        first.complete("p")

        assert mock_genai.configure.call_args_list[-1].kwargs == {"api_key": "key-one"}
        assert [c.kwargs["api_key"] for c in mock_genai.configure.call_args_list] == ["key-two", "key-one"]

    def test_constructor_does_not_touch_sdk_state(self):
        with patch("winesnap.services.model_client.genai") as mock_genai:
            GeminiClient("g-key")
        mock_genai.configure.assert_not_called()


class TestResponseText:
    def test_falls_back_to_candidate_parts(self):
        resp = SimpleNamespace(
            text="",
            candidates=[SimpleNamespace(content=SimpleNamespace(parts=[SimpleNamespace(text='{"a":'), SimpleNamespace(text="1}")]))],
        )
        assert _response_text(resp) == '{"a":1}'

    def test_text_property_that_raises(self):
        class Blocked:
            candidates = []

            @property
            def text(self):
                raise ValueError("no parts")

        assert _response_text(Blocked()) == ""


class TestBuildModelClient:
    def test_anthropic_default(self):
        client = build_model_client(Settings(anthropic_api_key="k"))
        try:
            assert isinstance(client, AnthropicClient)
            assert client.model == "claude-sonnet-4-5"
        finally:
            client.close()

    def test_missing_anthropic_key(self):
        with pytest.raises(MissingCredentialError) as excinfo:
            build_model_client(Settings(anthropic_api_key=""))
        assert str(excinfo.value) == "Missing ANTHROPIC_API_KEY"

    @patch("winesnap.services.model_client.genai")
    def test_gemini_provider(self, mock_genai):
        client = build_model_client(Settings(provider="gemini", model="gemini-1.5-flash", gemini_api_key="g"))
        assert isinstance(client, GeminiClient)

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            build_model_client(Settings(provider="nope", anthropic_api_key="k"))
