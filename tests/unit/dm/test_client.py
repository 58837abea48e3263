"""Tests for the OpenAI-compatible narrative client."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest
from openai import APIConnectionError, APIStatusError, RateLimitError
from tenacity import wait_none

from adventure_engine.core.config import AIProviderSettings, Settings
from adventure_engine.core.exceptions import (
    AIConnectionError,
    AIResponseError,
    ConfigurationError,
    EmptyResponseError,
)
from adventure_engine.dm.client import OpenAIChatClient
from adventure_engine.engine.tools import TOOL_SCHEMAS
from adventure_engine.models.conversation import ChatMessage, MessageRole


REQUEST = httpx.Request("POST", "https://api.deepseek.com/chat/completions")


def raw_response(
    content: str | None = None,
    tool_calls: list[Any] | None = None,
    **extra: Any,
) -> SimpleNamespace:
    """Build an object shaped like an SDK chat completion."""
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    fields = {
        "error": None,
        "model": "deepseek-chat",
        "choices": [SimpleNamespace(message=message, finish_reason="stop")],
    }
    fields.update(extra)
    return SimpleNamespace(**fields)


def raw_tool_call(call_id: str, name: str, arguments: str | None) -> SimpleNamespace:
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


@pytest.fixture
def sdk() -> MagicMock:
    return MagicMock()


@pytest.fixture
def client(settings: Settings, sdk: MagicMock) -> OpenAIChatClient:
    return OpenAIChatClient(settings=settings.ai, client=sdk, retry_wait=wait_none())


MESSAGES = [ChatMessage.system("You narrate."), ChatMessage.user("Begin the adventure.")]


class TestRequest:
    """Tests for the outgoing request."""

    def test_sends_history_and_tools(self, client: OpenAIChatClient, sdk: MagicMock) -> None:
        """Test the request carries the full history and the tool list."""
        sdk.chat.completions.create.return_value = raw_response(content="{}")

        client.complete(MESSAGES, TOOL_SCHEMAS)

        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == client.model
        assert kwargs["tool_choice"] == "auto"
        assert kwargs["tools"] == TOOL_SCHEMAS
        assert kwargs["messages"] == [
            {"role": "system", "content": "You narrate."},
            {"role": "user", "content": "Begin the adventure."},
        ]

    def test_missing_api_key(self, settings: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the SDK client is not built without a key."""
        monkeypatch.delenv("ADVENTURE_ENGINE_API_KEY", raising=False)
        client = OpenAIChatClient(settings=AIProviderSettings())

        with pytest.raises(ConfigurationError) as exc_info:
            client.complete(MESSAGES, TOOL_SCHEMAS)

        assert exc_info.value.details["config_key"] == "api_key"

    def test_lazy_sdk_construction(self, settings: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the SDK client is built once with SDK retries disabled."""
        factory = MagicMock()
        factory.return_value.chat.completions.create.return_value = raw_response(content="{}")
        monkeypatch.setattr("adventure_engine.dm.client.OpenAI", factory)
        client = OpenAIChatClient(settings=settings.ai, api_key="sk-test")

        client.complete(MESSAGES, TOOL_SCHEMAS)
        client.complete(MESSAGES, TOOL_SCHEMAS)

        factory.assert_called_once()
        assert factory.call_args.kwargs["api_key"] == "sk-test"
        assert factory.call_args.kwargs["max_retries"] == 0


class TestResponse:
    """Tests for response conversion."""

    def test_text_reply(self, client: OpenAIChatClient, sdk: MagicMock) -> None:
        """Test a plain assistant message."""
        sdk.chat.completions.create.return_value = raw_response(content='{"narrative": "Hi"}')

        response = client.complete(MESSAGES, TOOL_SCHEMAS)

        assert response.message.role is MessageRole.ASSISTANT
        assert response.message.content == '{"narrative": "Hi"}'
        assert response.message.tool_calls == []
        assert response.finish_reason == "stop"
        assert response.model == "deepseek-chat"

    def test_tool_calls_keep_raw_arguments(self, client: OpenAIChatClient, sdk: MagicMock) -> None:
        """Test tool call arguments are passed through unparsed."""
        sdk.chat.completions.create.return_value = raw_response(
            tool_calls=[
                raw_tool_call("call_1", "roll_dice", '{"expression": "1d20"}'),
                raw_tool_call("call_2", "get_player_status", None),
            ]
        )

        response = client.complete(MESSAGES, TOOL_SCHEMAS)

        first, second = response.message.tool_calls
        assert (first.id, first.name, first.arguments) == ("call_1", "roll_dice", '{"expression": "1d20"}')
        assert second.arguments == ""
        assert response.message.content is None

    def test_error_payload(self, client: OpenAIChatClient, sdk: MagicMock) -> None:
        """Test an error object in the body is a connection failure."""
        sdk.chat.completions.create.return_value = raw_response(error={"message": "quota exceeded"})

        with pytest.raises(AIConnectionError, match="quota exceeded"):
            client.complete(MESSAGES, TOOL_SCHEMAS)

    def test_no_choices(self, client: OpenAIChatClient, sdk: MagicMock) -> None:
        """Test a response without choices is empty."""
        sdk.chat.completions.create.return_value = raw_response(choices=[])

        with pytest.raises(EmptyResponseError):
            client.complete(MESSAGES, TOOL_SCHEMAS)

    def test_malformed_tool_call(self, client: OpenAIChatClient, sdk: MagicMock) -> None:
        """Test a tool call without a function is rejected."""
        sdk.chat.completions.create.return_value = raw_response(
            tool_calls=[SimpleNamespace(id="call_1")]
        )

        with pytest.raises(AIResponseError):
            client.complete(MESSAGES, TOOL_SCHEMAS)


class TestRetries:
    """Tests for transient failure handling."""

    def test_retries_connection_error(self, client: OpenAIChatClient, sdk: MagicMock) -> None:
        """Test a dropped connection is retried."""
        sdk.chat.completions.create.side_effect = [
            APIConnectionError(request=REQUEST),
            raw_response(content="{}"),
        ]

        response = client.complete(MESSAGES, TOOL_SCHEMAS)

        assert response.message.content == "{}"
        assert sdk.chat.completions.create.call_count == 2

    def test_gives_up_after_max_retries(self, client: OpenAIChatClient, sdk: MagicMock) -> None:
        """Test persistent connection failures surface as AIConnectionError."""
        sdk.chat.completions.create.side_effect = APIConnectionError(request=REQUEST)

        with pytest.raises(AIConnectionError):
            client.complete(MESSAGES, TOOL_SCHEMAS)

        assert sdk.chat.completions.create.call_count == client.settings.max_retries

    def test_rate_limit(self, client: OpenAIChatClient, sdk: MagicMock) -> None:
        """Test rate limiting is retried then reported."""
        sdk.chat.completions.create.side_effect = RateLimitError(
            "Rate limited",
            response=httpx.Response(429, request=REQUEST),
            body=None,
        )

        with pytest.raises(AIConnectionError, match="Rate limit exceeded"):
            client.complete(MESSAGES, TOOL_SCHEMAS)

    def test_status_error_not_retried(self, client: OpenAIChatClient, sdk: MagicMock) -> None:
        """Test HTTP errors fail immediately with their status code."""
        sdk.chat.completions.create.side_effect = APIStatusError(
            "Unauthorized",
            response=httpx.Response(401, request=REQUEST),
            body=None,
        )

        with pytest.raises(AIConnectionError) as exc_info:
            client.complete(MESSAGES, TOOL_SCHEMAS)

        assert exc_info.value.details["status_code"] == 401
        assert sdk.chat.completions.create.call_count == 1
