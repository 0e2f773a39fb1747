"""HTTP endpoints relaying chat and poetry requests to the upstream gateway."""

import logging
from typing import Any, Dict, List

from flask import Blueprint, Response, jsonify, request, stream_with_context
from pydantic import ValidationError

from .config import CORS_HEADERS, FUNCTIONS_PREFIX
from .errors import BayanError, InputError, UpstreamError
from .models import ChatMessage, ChatRequest, PoetryRequest
from .prompts import CHAT_SYSTEM_PROMPT, poetry_system_prompt, poetry_user_prompt

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "خطأ غير معروف"


def to_upstream_message(message: ChatMessage) -> Dict[str, Any]:
    """Restructures a message carrying images into multi-part content."""
    if not message.images:
        return {"role": message.role, "content": message.content}
    parts: List[Dict[str, Any]] = [{"type": "text", "text": message.content}]
    parts.extend(
        {"type": "image_url", "image_url": {"url": image}} for image in message.images
    )
    return {"role": message.role, "content": parts}


def _with_cors(response: Response, status: int = 200) -> Response:
    response.status_code = status
    response.headers.update(CORS_HEADERS)
    return response


def _error(message: str, status: int) -> Response:
    return _with_cors(jsonify({"error": message}), status)


def _json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def register_proxy(server, llm) -> Blueprint:
    """Mounts the chat and poetry endpoints on a Flask ``server``."""
    functions = Blueprint("functions", __name__, url_prefix=FUNCTIONS_PREFIX)

    @functions.route("/chat", methods=["POST", "OPTIONS"])
    def chat():
        if request.method == "OPTIONS":
            return _with_cors(Response())

        try:
            messages = _json_body().get("messages")
            if not messages or not isinstance(messages, list):
                raise InputError("الرسائل مطلوبة")
            try:
                chat_request = ChatRequest(messages=messages)
            except ValidationError as exc:
                raise InputError("صيغة الرسائل غير صحيحة") from exc

            logger.info("Processing chat request with %d messages", len(messages))
            upstream_messages = [{"role": "system", "content": CHAT_SYSTEM_PROMPT}]
            upstream_messages.extend(
                to_upstream_message(msg) for msg in chat_request.messages
            )
            body = llm.stream_response(upstream_messages)
        except UpstreamError as exc:
            logger.error("AI gateway error: %s %s", exc.upstream_status, exc.body)
            return _error(exc.message, exc.status)
        except BayanError as exc:
            logger.warning("Chat request rejected: %s", exc.message)
            return _error(exc.message, exc.status)
        except Exception as exc:
            logger.exception("Error in chat")
            return _error(str(exc) or UNKNOWN_ERROR, 500)

        response = Response(
            stream_with_context(body), content_type="text/event-stream"
        )
        return _with_cors(response)

    @functions.route("/generate-poetry", methods=["POST", "OPTIONS"])
    def generate_poetry():
        if request.method == "OPTIONS":
            return _with_cors(Response())

        try:
            try:
                poetry_request = PoetryRequest.model_validate(_json_body())
            except ValidationError as exc:
                raise InputError("الموضوع مطلوب") from exc
            topic, style = poetry_request.topic, poetry_request.type

            logger.info("Generating poetry for topic: %s type: %s", topic, style)
            response = llm.generate_response(
                [
                    {"role": "system", "content": poetry_system_prompt(style)},
                    {"role": "user", "content": poetry_user_prompt(topic)},
                ]
            )
            poetry = llm.extract_content(response)
            if not poetry:
                raise BayanError("فشل في إنشاء الشعر")
        except UpstreamError as exc:
            logger.error("AI gateway error: %s %s", exc.upstream_status, exc.body)
            return _error(exc.message, exc.status)
        except BayanError as exc:
            logger.warning("Poetry request failed: %s", exc.message)
            return _error(exc.message, exc.status)
        except Exception as exc:
            logger.exception("Error in generate-poetry")
            return _error(str(exc) or UNKNOWN_ERROR, 500)

        logger.info("Poetry generated successfully")
        return _with_cors(jsonify({"poetry": poetry}))

    server.register_blueprint(functions)
    return functions
