"""Narrative service transport.

The orchestrator only depends on :class:`NarrativeClient`. The shipped
implementation, :class:`OpenAIChatClient`, talks to any OpenAI-compatible
chat-completions endpoint (DeepSeek by default) with the openai SDK and
retries transient failures with tenacity.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from openai import APIConnectionError, APIStatusError, OpenAI, RateLimitError
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from adventure_engine.core.config import AIProviderSettings, get_settings
from adventure_engine.core.exceptions import (
    AIConnectionError,
    AIResponseError,
    ConfigurationError,
    EmptyResponseError,
)
from adventure_engine.core.logging import get_logger
from adventure_engine.models.conversation import (
    ChatMessage,
    ChatResponse,
    MessageRole,
    ToolCallRequest,
)


logger = get_logger(__name__)


class NarrativeClient(Protocol):
    """Sends the conversation to the narrator model."""

    def complete(
        self,
        messages: Sequence[ChatMessage],
        tools: Sequence[dict[str, Any]],
    ) -> ChatResponse:
        """Request the next assistant message.

        Raises:
            AIConnectionError: If the service could not be reached or
                answered with an error.
            AIResponseError: If the answer carries no usable message.
        """
        ...


class OpenAIChatClient:
    """OpenAI-compatible chat-completions client.

    Example:
        >>> client = OpenAIChatClient(api_key="sk-...", model="deepseek-chat")
        >>> response = client.complete(history.messages, TOOL_SCHEMAS)
    """

    def __init__(
        self,
        *,
        settings: AIProviderSettings | None = None,
        api_key: str | None = None,
        client: Any = None,
        retry_wait: wait_base | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Connection settings. Defaults to the application settings.
            api_key: Overrides the configured key.
            client: Pre-built SDK client; skips lazy construction.
            retry_wait: tenacity wait strategy between attempts.
        """
        self.settings = settings or get_settings().ai
        self._api_key = api_key
        self._client = client
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)

    @property
    def model(self) -> str:
        return self.settings.model

    def _get_client(self) -> Any:
        if self._client is None:
            api_key = self._api_key
            if api_key is None and self.settings.api_key is not None:
                api_key = self.settings.api_key.get_secret_value()
            if not api_key:
                raise ConfigurationError(
                    "Narrative service API key not configured",
                    config_key="api_key",
                    details={"env_var": "ADVENTURE_ENGINE_API_KEY"},
                )
            # Retries are handled here, not inside the SDK
            self._client = OpenAI(
                api_key=api_key,
                base_url=self.settings.base_url,
                timeout=self.settings.timeout_seconds,
                max_retries=0,
            )
        return self._client

    def complete(
        self,
        messages: Sequence[ChatMessage],
        tools: Sequence[dict[str, Any]],
    ) -> ChatResponse:
        """Send the full history plus the tool list and return the reply."""
        client = self._get_client()
        payload = [message.to_openai() for message in messages]

        retrying = Retrying(
            stop=stop_after_attempt(self.settings.max_retries),
            wait=self._retry_wait,
            retry=retry_if_exception_type((RateLimitError, APIConnectionError)),
            reraise=True,
        )

        logger.debug("Requesting narrative", model=self.model, messages=len(payload))
        try:
            for attempt in retrying:
                with attempt:
                    raw = client.chat.completions.create(
                        model=self.model,
                        messages=payload,
                        tools=list(tools),
                        tool_choice="auto",
                        temperature=self.settings.temperature,
                        max_tokens=self.settings.max_tokens,
                    )
        except RateLimitError as exc:
            raise AIConnectionError(
                f"Rate limit exceeded after {self.settings.max_retries} attempts",
                model=self.model,
                provider=self.settings.base_url,
            ) from exc
        except APIConnectionError as exc:
            raise AIConnectionError(
                f"Failed to connect to narrative service: {exc}",
                model=self.model,
                provider=self.settings.base_url,
            ) from exc
        except APIStatusError as exc:
            raise AIConnectionError(
                f"Narrative service error: {exc}",
                model=self.model,
                provider=self.settings.base_url,
                details={"status_code": exc.status_code},
            ) from exc

        return self._to_response(raw)

    def _to_response(self, raw: Any) -> ChatResponse:
        error = getattr(raw, "error", None)
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise AIConnectionError(
                message or "Narrative service returned an error",
                model=self.model,
                provider=self.settings.base_url,
            )

        choices = getattr(raw, "choices", None)
        if not choices:
            raise EmptyResponseError("Narrative service returned an empty response", model=self.model)

        choice = choices[0]
        message = getattr(choice, "message", None)
        if message is None:
            raise EmptyResponseError("Narrative service returned no message", model=self.model)

        try:
            tool_calls = [
                ToolCallRequest(
                    id=call.id,
                    name=call.function.name,
                    arguments=call.function.arguments or "",
                )
                for call in (message.tool_calls or [])
            ]
        except AttributeError as exc:
            raise AIResponseError(
                f"Malformed tool call in response: {exc}", model=self.model
            ) from exc

        logger.info(
            "Narrative response received",
            model=self.model,
            tool_calls=len(tool_calls),
            finish_reason=getattr(choice, "finish_reason", None),
        )
        return ChatResponse(
            message=ChatMessage(
                role=MessageRole.ASSISTANT,
                content=message.content,
                tool_calls=tool_calls,
            ),
            finish_reason=getattr(choice, "finish_reason", None),
            model=getattr(raw, "model", None),
        )


__all__ = [
    "NarrativeClient",
    "OpenAIChatClient",
]
