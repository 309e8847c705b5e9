"""Async Claude API client for the chat pipeline.

Two call shapes are used:

- :meth:`LLMClient.complete_text` — single-shot text completion (summaries,
  health analysis, the final reply).
- :meth:`LLMClient.decide_tool` — a short, low-temperature call that offers
  exactly one tool and reports whether Claude chose to invoke it.

SDK exceptions are translated into :class:`GenerationError` so callers can
show the user a specific cause instead of a stack trace.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import anthropic

from src.llm.models import ModelRoles

if TYPE_CHECKING:
    from src.config import Settings

logger = logging.getLogger(__name__)


class GenerationErrorKind(StrEnum):
    SERVICE_UNAVAILABLE = "service_unavailable"
    MODEL_NOT_FOUND = "model_not_found"
    RATE_LIMITED = "rate_limited"
    TIMED_OUT = "timed_out"
    NOT_CONFIGURED = "not_configured"
    UNKNOWN = "unknown"


USER_MESSAGES: dict[GenerationErrorKind, str] = {
    GenerationErrorKind.SERVICE_UNAVAILABLE: (
        "Sorry, the AI service is not running or could not be reached. "
        "Please try again in a few minutes."
    ),
    GenerationErrorKind.MODEL_NOT_FOUND: (
        "Sorry, the configured AI model was not found. "
        "Please let the administrator know."
    ),
    GenerationErrorKind.RATE_LIMITED: (
        "Sorry, the AI service is receiving too many requests right now. "
        "Please try again in a moment."
    ),
    GenerationErrorKind.TIMED_OUT: (
        "Sorry, the AI service took too long to respond. "
        "Please try sending your message again."
    ),
    GenerationErrorKind.NOT_CONFIGURED: (
        "Sorry, the AI service is not configured. Please contact the administrator."
    ),
    GenerationErrorKind.UNKNOWN: (
        "Sorry, something went wrong while generating a response. Please try again."
    ),
}


class GenerationError(Exception):
    """A reply could not be produced. ``str(err)`` is safe to show the user."""

    def __init__(self, kind: GenerationErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(USER_MESSAGES[kind])

    @property
    def user_message(self) -> str:
        return USER_MESSAGES[self.kind]


def classify_llm_error(exc: BaseException) -> GenerationError:
    """Map an anthropic SDK exception to a :class:`GenerationError`."""
    if isinstance(exc, GenerationError):
        return exc
    detail = str(exc)
    # APITimeoutError subclasses APIConnectionError, so it goes first.
    if isinstance(exc, anthropic.APITimeoutError):
        return GenerationError(GenerationErrorKind.TIMED_OUT, detail)
    if isinstance(exc, anthropic.APIConnectionError):
        return GenerationError(GenerationErrorKind.SERVICE_UNAVAILABLE, detail)
    if isinstance(exc, anthropic.NotFoundError):
        return GenerationError(GenerationErrorKind.MODEL_NOT_FOUND, detail)
    if isinstance(exc, anthropic.RateLimitError):
        return GenerationError(GenerationErrorKind.RATE_LIMITED, detail)
    if isinstance(exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return GenerationError(GenerationErrorKind.NOT_CONFIGURED, detail)
    if isinstance(exc, anthropic.APIStatusError) and exc.status_code >= 500:
        return GenerationError(GenerationErrorKind.SERVICE_UNAVAILABLE, detail)
    if isinstance(exc, TimeoutError):
        return GenerationError(GenerationErrorKind.TIMED_OUT, detail)
    return GenerationError(GenerationErrorKind.UNKNOWN, detail)


@dataclass
class ToolDecision:
    """Outcome of a single-tool decision call."""

    invoked: bool
    arguments: dict[str, Any] = field(default_factory=dict)
    reasoning: str = ""


def _text_of(content: list[Any]) -> str:
    """Concatenate the text blocks of a response."""
    return "".join(block.text for block in content if getattr(block, "type", "") == "text")


class LLMClient:
    """Thin wrapper around ``anthropic.AsyncAnthropic``.

    Constructed once at startup (see ``src.services``) and passed to every
    component that talks to Claude. Tests pass a mocked SDK client.
    """

    def __init__(
        self,
        client: Any | None,
        models: ModelRoles | None = None,
    ) -> None:
        self._client = client
        self.models = models or ModelRoles()

    @classmethod
    def from_settings(cls, settings: Settings) -> LLMClient:
        models = ModelRoles(settings.default_chat_model, settings.default_fast_model)
        if not settings.anthropic_api_key:
            logger.warning("ANTHROPIC_API_KEY not set — replies cannot be generated")
            return cls(None, models)
        return cls(anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key), models)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def _require_client(self) -> Any:
        if self._client is None:
            raise GenerationError(GenerationErrorKind.NOT_CONFIGURED, "no API key")
        return self._client

    async def complete_text(
        self,
        messages: list[dict[str, Any]],
        *,
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> str:
        """Single-shot Claude call — no tools, no streaming.

        Raises:
            GenerationError: on any SDK failure, categorised.
        """
        client = self._require_client()
        kwargs: dict[str, Any] = {
            "model": model or self.models.chat,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if system is not None:
            kwargs["system"] = system
        if temperature is not None:
            kwargs["temperature"] = temperature
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = await client.messages.create(**kwargs)
        except Exception as exc:
            raise classify_llm_error(exc) from exc
        return _text_of(response.content)

    async def decide_tool(
        self,
        prompt: str,
        tool: dict[str, Any],
        *,
        system: str,
        model: str | None = None,
        max_tokens: int = 128,
        temperature: float = 0.1,
        timeout: float | None = None,
    ) -> ToolDecision:
        """Offer Claude exactly one tool and report whether it was called.

        Raises:
            GenerationError: on any SDK failure, categorised. Callers that
                treat the decision as optional catch this.
        """
        client = self._require_client()
        kwargs: dict[str, Any] = {
            "model": model or self.models.fast,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system,
            "tools": [tool],
            "tool_choice": {"type": "auto"},
            "messages": [{"role": "user", "content": prompt}],
        }
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = await client.messages.create(**kwargs)
        except Exception as exc:
            raise classify_llm_error(exc) from exc

        for block in response.content:
            if getattr(block, "type", "") == "tool_use" and block.name == tool["name"]:
                return ToolDecision(
                    invoked=True,
                    arguments=dict(block.input or {}),
                    reasoning=_text_of(response.content),
                )
        return ToolDecision(invoked=False, reasoning=_text_of(response.content))
