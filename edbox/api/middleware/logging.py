"""
Request logging for the EdBox API.

Every request gets an id, echoed back in the `X-Request-ID` header and
attached to error responses, so a failed call can be found in the logs.
"""

import time
import uuid
from flask import request, g

from ...utils.logging import get_logger


logger = get_logger(__name__)

REQUEST_ID_HEADER = 'X-Request-ID'

# Body fields kept out of the log; documents can be large and private
REDACTED_FIELDS = frozenset({'api_key', 'llm_key', 'content', 'file', 'file_text', 'sources'})


def redact(data: dict) -> dict:
    return {key: ('<redacted>' if key in REDACTED_FIELDS else value) for key, value in data.items()}


class LoggingMiddleware:
    """Request/response logging hooks."""

    @staticmethod
    def before_request():
        g.start_time = time.perf_counter()
        g.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        if request.method == 'POST' and request.is_json:
            body = request.get_json(silent=True)
            if isinstance(body, dict):
                logger.debug("Request body", request_id=g.request_id, body=redact(body))

    @staticmethod
    def after_request(response):
        request_id = getattr(g, 'request_id', None)
        if request_id is None:
            return response

        response.headers[REQUEST_ID_HEADER] = request_id
        duration = time.perf_counter() - g.start_time
        fields = dict(
            request_id=request_id,
            method=request.method,
            path=request.path,
            status=response.status_code,
            duration_ms=round(duration * 1000, 1)
        )
        if response.status_code >= 500:
            logger.error("Request failed", **fields)
        elif response.status_code >= 400:
            logger.warning("Request rejected", **fields)
        else:
            logger.info("Request completed", **fields)
        return response
