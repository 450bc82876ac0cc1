"""HTTP response values and JSON helpers shared by the request handlers."""

from __future__ import annotations

import datetime
import json
import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Optional

logger = logging.getLogger(__name__)

_HTML_SAFE = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


@dataclass
class Response:
    """A complete HTTP response: status code, headers and body bytes."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


def _default(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(obj, uuid.UUID):
        return str(obj)
    if isinstance(obj, (datetime.datetime, datetime.date)):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _encode(payload: Any) -> bytes:
    text = json.dumps(payload, default=_default, separators=(",", ":"), ensure_ascii=False)
    for char, escaped in _HTML_SAFE.items():
        text = text.replace(char, escaped)
    return text.encode("utf-8")


def json_response(code: int, payload: Any) -> Response:
    """Serialise the payload as compact JSON; a payload that cannot be encoded gives a 500."""
    headers = {"Content-Type": "application/json"}
    try:
        data = _encode(payload)
    except (TypeError, ValueError) as exc:
        logger.error("Error marshalling JSON: %s", exc)
        return Response(500, headers)
    return Response(code, headers, data)


def error_response(code: int, message: str, error: Optional[BaseException] = None) -> Response:
    """Log the error and return a JSON body of the form {"error": message}."""
    if error is not None:
        logger.error("%s", error)
    if code > 499:
        logger.error("Responding with 5XX error: %s", message)
    return json_response(code, {"error": message})


def with_no_cache(response: Response) -> Response:
    """Return a copy of the response that forbids caching."""
    return replace(response, headers={**response.headers, "Cache-Control": "no-store"})