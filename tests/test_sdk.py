"""
Tests for the OpenAI-backed generative client
"""

from types import SimpleNamespace
from unittest.mock import Mock

import httpx
import pytest
from openai import BadRequestError

from agents.sdk import AgentSDK, GenerationError


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def sdk(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    s = AgentSDK(model="gpt-4o-mini", timeout_s=5.0)
    fake = Mock()
    fake.with_options.return_value = fake
    s._client = fake
    return s


class TestGenerate:
    def test_returns_raw_text(self, sdk):
        sdk._client.chat.completions.create.return_value = _completion('{"ok": true}')
        assert sdk.generate("sys", "user") == '{"ok": true}'
        kwargs = sdk._client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "user"},
        ]
        sdk._client.with_options.assert_called_with(timeout=5.0)
        assert sdk.last_raw == '{"ok": true}'

    def test_json_mode_disabled(self, sdk):
        sdk.json_mode = False
        sdk._client.chat.completions.create.return_value = _completion("text")
        sdk.generate("s", "u")
        assert "response_format" not in sdk._client.chat.completions.create.call_args.kwargs

    def test_falls_back_when_response_format_rejected(self, sdk):
        rejected = BadRequestError(
            "response_format not supported",
            response=httpx.Response(400, request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")),
            body=None,
        )
        sdk._client.chat.completions.create.side_effect = [rejected, _completion("plain")]
        assert sdk.generate("s", "u") == "plain"
        second = sdk._client.chat.completions.create.call_args_list[1].kwargs
        assert "response_format" not in second
        assert "fallback" in sdk.last_error

    def test_none_content_is_empty_text(self, sdk):
        sdk._client.chat.completions.create.return_value = _completion(None)
        assert sdk.generate("s", "u") == ""

    def test_no_choices_raises(self, sdk):
        sdk._client.chat.completions.create.return_value = SimpleNamespace(choices=[])
        with pytest.raises(GenerationError):
            sdk.generate("s", "u")

    def test_api_failure_raises_generation_error(self, sdk):
        sdk._client.chat.completions.create.side_effect = RuntimeError("503 upstream")
        with pytest.raises(GenerationError, match="503 upstream"):
            sdk.generate("s", "u")
        assert "503 upstream" in sdk.diagnostics()["last_error"]

    def test_unconfigured_client(self, sdk):
        sdk._client = None
        sdk.last_error = None
        with pytest.raises(GenerationError, match="not configured"):
            sdk.generate("s", "u")
