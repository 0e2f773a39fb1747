"""HTTP client for the proxy endpoints, used by the UI sessions."""

import logging
from typing import Callable, List, Optional

import requests

from . import config
from .decoder import StreamDecoder
from .errors import ChatTransportError, PoetryError
from .models import ChatMessage

logger = logging.getLogger(__name__)

CONNECTION_FAILED = "فشل في الاتصال بالخادم"
POETRY_FAILED = "فشل في إنشاء الشعر"


def _error_message(response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        return body.get("error") or body.get("message") or default
    return default


class ProxyClient:
    """Talks to the chat and poetry endpoints.

    Parameters
    ----------
    base_url : str
        Service base URL; endpoints live under ``/functions/v1``.
    public_key : str
        Public access key sent as bearer token and ``apikey`` header.
    http : requests.Session, optional
        Injected session, mostly for tests.
    """

    def __init__(
        self,
        base_url: str = config.SERVICE_URL,
        public_key: str = config.PUBLIC_KEY,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.public_key = public_key
        self.http = http if http is not None else requests.Session()

    def _url(self, name: str) -> str:
        return f"{self.base_url}{config.FUNCTIONS_PREFIX}/{name}"

    def _headers(self):
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.public_key}",
            "apikey": self.public_key,
        }

    def stream_chat(
        self,
        messages: List[ChatMessage],
        on_text: Optional[Callable[[str], None]] = None,
    ) -> str:
        """Sends the conversation and returns the streamed assistant text.

        ``on_text`` receives the accumulated text after every delta. There is
        no read timeout: a stalled stream blocks the caller.
        """
        payload = {"messages": [msg.to_payload() for msg in messages]}
        try:
            response = self.http.post(
                self._url("chat"),
                json=payload,
                headers=self._headers(),
                stream=True,
                timeout=(10, None),
            )
        except requests.RequestException as exc:
            raise ChatTransportError(CONNECTION_FAILED) from exc

        try:
            if not response.ok:
                message = _error_message(response, CONNECTION_FAILED)
                logger.warning("Chat endpoint returned %s: %s", response.status_code, message)
                raise ChatTransportError(message, status=response.status_code)
            if response.raw is None:
                raise ChatTransportError(CONNECTION_FAILED)

            decoder = StreamDecoder(on_text=on_text)
            for chunk in response.iter_content(chunk_size=None):
                decoder.feed(chunk)
            decoder.finish()
            return decoder.text
        except requests.RequestException as exc:
            raise ChatTransportError(CONNECTION_FAILED) from exc
        finally:
            response.close()

    def generate_poetry(self, topic: str, style: Optional[str] = None) -> str:
        try:
            response = self.http.post(
                self._url("generate-poetry"),
                json={"topic": topic, "type": style},
                headers=self._headers(),
                timeout=(10, None),
            )
        except requests.RequestException as exc:
            raise PoetryError(POETRY_FAILED) from exc

        if response.status_code != 200:
            raise PoetryError(
                _error_message(response, POETRY_FAILED), status=response.status_code
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise PoetryError(POETRY_FAILED) from exc
        poetry = body.get("poetry") if isinstance(body, dict) else None
        if not poetry:
            raise PoetryError(POETRY_FAILED)
        return poetry
