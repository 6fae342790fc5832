"""
Unit tests for the analysis service transports.
"""

import json
from unittest.mock import Mock

import openai
import pytest
import requests

from autocodereview.analysis.transport import HTTPAnalysisTransport, OpenAIAnalysisTransport
from autocodereview.exceptions import AnalysisAuthFailure, AnalysisTransientFailure, MalformedResponse


def http_response(status_code, payload=None, json_error=False):
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    if json_error:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = payload if payload is not None else {"findings": []}
    return response


def api_response(status_code):
    return Mock(status_code=status_code, headers={}, request=Mock())


class TestHTTPAnalysisTransport:
    """Unit tests for HTTPAnalysisTransport class."""

    def setup_method(self):
        self.session = Mock()
        self.transport = HTTPAnalysisTransport("https://review.example.com/analyze", timeout=5, session=self.session)

    def test_submit_sends_chunk_and_credential_header(self):
        self.session.post.return_value = http_response(200, {"findings": [{"message": "m"}]})

        payload = self.transport.submit("@@ -1 +1 @@\n-a\n+b\n", "sk-test", {"max_findings": 3})

        assert payload == {"findings": [{"message": "m"}]}
        args, kwargs = self.session.post.call_args
        assert args[0] == "https://review.example.com/analyze"
        assert kwargs["json"] == {"diff_chunk": "@@ -1 +1 @@\n-a\n+b\n", "options": {"max_findings": 3}}
        assert kwargs["headers"] == {"Authorization": "Bearer sk-test"}
        assert kwargs["timeout"] == 5
        assert "sk-test" not in json.dumps(kwargs["json"])

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_statuses(self, status):
        self.session.post.return_value = http_response(status)

        with pytest.raises(AnalysisAuthFailure):
            self.transport.submit("diff", "bad")

    @pytest.mark.parametrize("status", [408, 429, 500, 502, 503, 504, 599])
    def test_transient_statuses(self, status):
        self.session.post.return_value = http_response(status)

        with pytest.raises(AnalysisTransientFailure):
            self.transport.submit("diff", "key")

    @pytest.mark.parametrize("error", [
        requests.Timeout("read timed out"),
        requests.ConnectionError("refused"),
        requests.RequestException("boom"),
    ])
    def test_network_errors_are_transient(self, error):
        self.session.post.side_effect = error

        with pytest.raises(AnalysisTransientFailure):
            self.transport.submit("diff", "key")

    def test_client_error_is_malformed(self):
        self.session.post.return_value = http_response(422)

        with pytest.raises(MalformedResponse):
            self.transport.submit("diff", "key")

    def test_non_json_body_is_malformed(self):
        self.session.post.return_value = http_response(200, json_error=True)

        with pytest.raises(MalformedResponse):
            self.transport.submit("diff", "key")

    def test_endpoint_required(self):
        with pytest.raises(ValueError):
            HTTPAnalysisTransport("")


class TestOpenAIAnalysisTransport:
    """Unit tests for OpenAIAnalysisTransport class."""

    def setup_method(self):
        self.client = Mock()
        self.factory = Mock(return_value=self.client)
        self.transport = OpenAIAnalysisTransport(model="gpt-test", client_factory=self.factory)

    def reply(self, content):
        message = Mock(content=content)
        self.client.chat.completions.create.return_value = Mock(choices=[Mock(message=message)])

    def test_submit_parses_json_reply(self):
        self.reply('{"findings": [{"file": "a.py", "line": 2, "message": "typo"}]}')

        payload = self.transport.submit("diff text", "sk-openai", {"max_findings": 5})

        assert payload["findings"][0]["file"] == "a.py"
        self.factory.assert_called_once_with("sk-openai")
        kwargs = self.client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert "at most 5 findings" in kwargs["messages"][0]["content"]
        assert "diff text" in kwargs["messages"][1]["content"]
        assert all("sk-openai" not in m["content"] for m in kwargs["messages"])

    def test_client_reused_per_credential(self):
        self.reply('{"findings": []}')

        self.transport.submit("one", "key")
        self.transport.submit("two", "key")

        self.factory.assert_called_once_with("key")

    def test_non_json_reply_is_malformed(self):
        self.reply("Sure! Here are my findings:")

        with pytest.raises(MalformedResponse):
            self.transport.submit("diff", "key")

    def test_authentication_error(self):
        self.client.chat.completions.create.side_effect = openai.AuthenticationError(
            "Incorrect API key", response=api_response(401), body=None,
        )

        with pytest.raises(AnalysisAuthFailure):
            self.transport.submit("diff", "key")

    @pytest.mark.parametrize("error", [
        openai.APITimeoutError(request=Mock()),
        openai.RateLimitError("slow down", response=api_response(429), body=None),
        openai.InternalServerError("oops", response=api_response(500), body=None),
    ])
    def test_transient_errors(self, error):
        self.client.chat.completions.create.side_effect = error

        with pytest.raises(AnalysisTransientFailure):
            self.transport.submit("diff", "key")

    def test_other_status_is_malformed(self):
        self.client.chat.completions.create.side_effect = openai.BadRequestError(
            "bad request", response=api_response(400), body=None,
        )

        with pytest.raises(MalformedResponse):
            self.transport.submit("diff", "key")
