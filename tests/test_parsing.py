"""Tests for gengame.utils.parsing: strip_fences, parse_artifact, invoke_with_retry, request_artifact."""

import json
from unittest.mock import patch, MagicMock

import httpx
import pytest

from gengame.utils.parsing import (
    content_text,
    invoke_with_retry,
    parse_artifact,
    request_artifact,
    strip_fences,
)

ARTIFACT_JSON = json.dumps({
    "title": "Supply Shock",
    "description": "Catch the containers.",
    "setup_code": "scratch.score = 0",
    "update_code": "scratch.score += 1",
})


def _response(content):
    response = MagicMock()
    response.content = content
    return response


# --- strip_fences ---

class TestStripFences:
    def test_strip_json_fences(self):
        text = '```json\n{"key": "value"}\n```'
        assert strip_fences(text) == '{"key": "value"}'

    def test_strip_plain_fences(self):
        text = '```\n{"key": "value"}\n```'
        assert strip_fences(text) == '{"key": "value"}'

    def test_no_fences_returns_stripped(self):
        text = '  {"key": "value"}  '
        assert strip_fences(text) == '{"key": "value"}'


# --- parse_artifact ---

class TestParseArtifact:
    def test_parses_snake_case_fields(self):
        artifact = parse_artifact(ARTIFACT_JSON)
        assert artifact.title == "Supply Shock"
        assert artifact.update_code == "scratch.score += 1"

    def test_accepts_camel_case_aliases(self):
        artifact = parse_artifact(json.dumps({
            "title": "t", "description": "d", "setupCode": "pass", "updateCode": "pass",
        }))
        assert artifact.setup_code == "pass"
        assert artifact.update_code == "pass"

    def test_fenced_payload(self):
        artifact = parse_artifact(f"```json\n{ARTIFACT_JSON}\n```")
        assert artifact.title == "Supply Shock"

    def test_missing_code_raises_value_error(self):
        with pytest.raises(ValueError):
            parse_artifact(json.dumps({"title": "t", "setup_code": "pass"}))

    def test_not_json_raises(self):
        with pytest.raises(json.JSONDecodeError):
            parse_artifact("here is your game!")


class TestContentText:
    def test_string_content(self):
        assert content_text(_response("abc")) == "abc"

    def test_list_content_is_joined(self):
        parts = [{"type": "text", "text": "ab"}, {"type": "text", "text": "c"}]
        assert content_text(_response(parts)) == "abc"

    def test_none_content(self):
        assert content_text(_response(None)) == ""


# --- invoke_with_retry ---

class TestInvokeWithRetry:
    def _mock_llm(self, side_effect):
        llm = MagicMock()
        llm.invoke.side_effect = side_effect
        return llm

    @patch("gengame.config._config", {"llm_max_retries": 3})
    def test_succeeds_on_first_try(self):
        llm = self._mock_llm([_response('{"ok": true}')])

        result = invoke_with_retry(llm, [{"role": "user", "content": "hi"}])

        assert result.content == '{"ok": true}'
        assert llm.invoke.call_count == 1

    @patch("gengame.config._config", {"llm_max_retries": 3})
    def test_retries_on_connect_error(self):
        llm = self._mock_llm([
            httpx.ConnectError("connection refused"),
            _response('{"ok": true}'),
        ])

        result = invoke_with_retry(llm, [{"role": "user", "content": "hi"}])

        assert result.content == '{"ok": true}'
        assert llm.invoke.call_count == 2

    @patch("gengame.config._config", {"llm_max_retries": 3})
    def test_retries_on_503(self):
        response_503 = httpx.Response(503, request=httpx.Request("POST", "https://api.example.com"))
        llm = self._mock_llm([
            httpx.HTTPStatusError("unavailable", request=response_503.request, response=response_503),
            _response('{"ok": true}'),
        ])

        result = invoke_with_retry(llm, [{"role": "user", "content": "hi"}])

        assert llm.invoke.call_count == 2

    @patch("gengame.config._config", {"llm_max_retries": 1})
    def test_raises_after_max_retries(self):
        llm = self._mock_llm([
            httpx.ConnectError("fail 1"),
            httpx.ConnectError("fail 2"),
        ])

        with pytest.raises(httpx.ConnectError):
            invoke_with_retry(llm, [{"role": "user", "content": "hi"}])

        assert llm.invoke.call_count == 2  # 1 initial + 1 retry

    @patch("gengame.config._config", {"llm_max_retries": 3})
    def test_does_not_retry_on_auth_error(self):
        response_401 = httpx.Response(401, request=httpx.Request("POST", "https://api.example.com"))
        llm = self._mock_llm([
            httpx.HTTPStatusError("unauthorized", request=response_401.request, response=response_401),
        ])

        with pytest.raises(httpx.HTTPStatusError):
            invoke_with_retry(llm, [{"role": "user", "content": "hi"}])

        assert llm.invoke.call_count == 1


# --- request_artifact ---

class TestRequestArtifact:
    @patch("gengame.config._config", {"llm_max_retries": 0})
    def test_reprompts_once_on_malformed_reply(self):
        llm = MagicMock()
        llm.invoke.side_effect = [_response("sorry, no json"), _response(ARTIFACT_JSON)]

        artifact = request_artifact(llm, [{"role": "user", "content": "Topic: x"}])

        assert artifact.title == "Supply Shock"
        assert llm.invoke.call_count == 2
        second_messages = llm.invoke.call_args_list[1][0][0]
        assert second_messages[-2] == {"role": "assistant", "content": "sorry, no json"}
        assert "JSON" in second_messages[-1]["content"]

    @patch("gengame.config._config", {"llm_max_retries": 0})
    def test_second_malformed_reply_raises(self):
        llm = MagicMock()
        llm.invoke.side_effect = [_response("nope"), _response("still nope")]

        with pytest.raises(json.JSONDecodeError):
            request_artifact(llm, [{"role": "user", "content": "Topic: x"}])
        assert llm.invoke.call_count == 2
