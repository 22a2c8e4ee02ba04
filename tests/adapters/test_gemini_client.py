"""Tests for the Gemini HTTP client."""

from unittest.mock import MagicMock, patch

import pytest
import requests
from pydantic import SecretStr

from mapdesk.adapters.gemini import GeminiClient
from mapdesk.config import GeminiConfig
from mapdesk.domain.errors import DependencyError


def make_client(api_key="test-key"):
    return GeminiClient(config=GeminiConfig(api_key=SecretStr(api_key), max_retries=0))


def fake_response(payload=None, status_error=None):
    response = MagicMock()
    response.json.return_value = payload
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    return response


ANSWER = {"candidates": [{"content": {"parts": [{"text": " camp \n"}]}}]}


def test_missing_key_fails_without_request():
    client = make_client(api_key="")
    with patch.object(client._session, "post") as mock_post:
        with pytest.raises(DependencyError):
            client.generate("hello")
        mock_post.assert_not_called()


def test_returns_first_candidate_text():
    client = make_client()
    with patch.object(client._session, "post", return_value=fake_response(ANSWER)) as mock_post:
        assert client.generate("classify", timeout=2.0) == "camp"

    _, kwargs = mock_post.call_args
    assert mock_post.call_args.args[0].endswith("/models/gemini-1.5-flash:generateContent")
    assert kwargs["params"] == {"key": "test-key"}
    assert kwargs["json"]["contents"][0]["parts"][0]["text"] == "classify"
    assert kwargs["timeout"] == 2.0


def test_http_error_becomes_dependency_error():
    client = make_client()
    error = requests.exceptions.HTTPError("503 Server Error")
    with patch.object(client._session, "post", return_value=fake_response(status_error=error)):
        with pytest.raises(DependencyError) as exc_info:
            client.generate("hello")
    assert exc_info.value.service == "gemini"


def test_timeout_becomes_dependency_error():
    client = make_client()
    with patch.object(client._session, "post", side_effect=requests.exceptions.Timeout()):
        with pytest.raises(DependencyError):
            client.generate("hello")


def test_unexpected_shape_becomes_dependency_error():
    client = make_client()
    with patch.object(client._session, "post", return_value=fake_response({"candidates": []})):
        with pytest.raises(DependencyError):
            client.generate("hello")
