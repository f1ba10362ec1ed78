"""Response encoding shared by the control endpoints.

Success bodies are indented JSON. Error bodies are a fixed, newline-terminated
plain-text message; the underlying cause is logged and never sent.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from aiohttp import web
from pydantic import BaseModel

from .constants import MSG_INTERNAL_ERROR
from .exceptions import EncodingError

logger = logging.getLogger(__name__)


def encode_json(payload: Any) -> str:
    """Serialize ``payload`` as JSON indented by two spaces."""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(by_alias=True, exclude_none=True)
    try:
        return json.dumps(payload, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as err:
        raise EncodingError(f"Cannot encode {type(payload).__name__} as JSON") from err


def json_response(payload: Any, status: int = 200) -> web.Response:
    """Return ``payload`` as an indented JSON response.

    An unencodable payload only fails the current request (500).
    """
    try:
        body = encode_json(payload)
    except EncodingError:
        logger.exception("Couldn't turn response payload into JSON: %r", payload)
        return web.Response(status=500, text=MSG_INTERNAL_ERROR + "\n")
    return web.Response(status=status, text=body, content_type="application/json")


def error_response(
    message: str, cause: BaseException | None = None, status: int = 500
) -> web.Response:
    """Log ``cause`` and return the client-safe ``message`` as plain text."""
    if cause is not None:
        logger.error("Request failed (%s): %s", type(cause).__name__, cause)
    logger.info("Sending to client: %s", message)
    return web.Response(status=status, text=message + "\n")
