"""Concrete implementations for upstream model gateways."""

import json
import logging
import os
from abc import ABC, abstractmethod
from contextlib import ExitStack
from typing import Any, Dict, Iterator, List, Optional

from . import config
from .errors import (
    ConfigurationError,
    QuotaExceededError,
    RateLimitedError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = "تم تجاوز حد الطلبات، يرجى المحاولة لاحقاً"
QUOTA_EXCEEDED_MESSAGE = "يرجى إضافة رصيد إلى حسابك"


class LLM(ABC):
    """Abstract Base Class for all upstream gateways."""

    @abstractmethod
    def generate_response(
        self, messages: List[Dict[str, Any]], model: Optional[str] = None, **kwargs: Any
    ) -> Any:
        """Makes a single buffered chat-completion call.

        Parameters
        ----------
        messages : List[Dict[str, Any]]
            Chat-completion messages, system instruction included.
        model : str, optional
            Overrides the provider's default model.
        **kwargs : Any
            Passed directly to the underlying SDK.

        Returns
        -------
        Any
            The provider's native response object.
        """
        pass

    @abstractmethod
    def extract_content(self, response: Any) -> Optional[str]:
        """Extracts the generated text from a buffered response, if any."""
        pass

    @abstractmethod
    def stream_response(
        self, messages: List[Dict[str, Any]], model: Optional[str] = None
    ) -> Iterator[bytes]:
        """Opens a streaming call and returns the raw event-stream body.

        The upstream status is checked before this method returns, so errors
        surface as exceptions here rather than mid-iteration.
        """
        pass


def _translate_status_error(exc: Any, failure_message: str) -> Exception:
    status = getattr(exc, "status_code", None)
    if status == 429:
        return RateLimitedError(RATE_LIMITED_MESSAGE)
    if status == 402:
        return QuotaExceededError(QUOTA_EXCEEDED_MESSAGE)
    body = getattr(exc, "body", None)
    if body is not None and not isinstance(body, str):
        body = json.dumps(body, ensure_ascii=False)
    return UpstreamError(failure_message, upstream_status=status, body=body or "")


class Gateway(LLM):
    """An OpenAI-compatible gateway reached through the ``openai`` SDK."""

    def __init__(
        self,
        default_model: str = config.DEFAULT_MODEL,
        base_url: str = config.GATEWAY_URL,
        api_key: Optional[str] = None,
    ):
        self.model = default_model
        self.base_url = base_url
        self._api_key = api_key
        self._client = None

    @property
    def client(self):
        if self._client is None:
            from openai import OpenAI

            api_key = self._api_key or os.environ.get(config.GATEWAY_KEY_ENV)
            if not api_key:
                raise ConfigurationError(f"{config.GATEWAY_KEY_ENV} is not configured")
            self._client = OpenAI(base_url=self.base_url, api_key=api_key, max_retries=0)
        return self._client

    def generate_response(self, messages, model=None, **kwargs):
        import openai

        try:
            return self.client.chat.completions.create(
                model=model or self.model, messages=messages, **kwargs
            )
        except openai.APIStatusError as exc:
            raise _translate_status_error(exc, "خطأ في إنشاء الشعر") from exc

    def extract_content(self, response: Any) -> Optional[str]:
        if not response.choices:
            return None
        return response.choices[0].message.content

    def stream_response(self, messages, model=None):
        import openai

        stack = ExitStack()
        try:
            response = stack.enter_context(
                self.client.chat.completions.with_streaming_response.create(
                    model=model or self.model, messages=messages, stream=True
                )
            )
        except openai.APIStatusError as exc:
            stack.close()
            raise _translate_status_error(exc, "خطأ في المحادثة") from exc

        def relay():
            with stack:
                yield from response.iter_bytes()

        return relay()


class Echo(LLM):
    """Offline gateway that answers with the user's own words."""

    def __init__(self, default_model: str = "echo-v1"):
        self.model = default_model

    def _last_user_text(self, messages) -> str:
        for message in reversed(messages):
            if message.get("role") != "user":
                continue
            content = message.get("content")
            if isinstance(content, list):
                return " ".join(
                    part.get("text", "") for part in content if part.get("type") == "text"
                )
            return content or ""
        return "No message provided"

    def generate_response(self, messages, model=None, **kwargs):
        content = f"Echo: {self._last_user_text(messages)}"
        return {"choices": [{"message": {"content": content}}]}

    def extract_content(self, response: Any) -> Optional[str]:
        if isinstance(response, dict) and response.get("choices"):
            return response["choices"][0]["message"]["content"]
        return None

    def stream_response(self, messages, model=None):
        words = self._last_user_text(messages).split(" ")
        pieces = ["Echo: "] + [word + " " for word in words[:-1]] + words[-1:]

        def relay():
            for piece in pieces:
                record = {"choices": [{"delta": {"content": piece}}]}
                yield f"data: {json.dumps(record, ensure_ascii=False)}\n\n".encode("utf-8")
            yield b"data: [DONE]\n\n"

        return relay()
