"""
Per-request logging for the ledger HTTP API.

Every request gets an id (taken from X-Request-ID when the caller sends one)
that is echoed back in the response and attached to each log record made
while the request runs. Routes addressing a contract or work also tag the
context with its id, so ledger service logs can be tied back to the call.
"""

import time
import uuid

from flask import Flask, Response, g, request

from monitoring.logging import clear_request_context, get_logger, set_request_context

logger = get_logger("rightsledger.request")

# URL parameters copied into the log context
_TRACKED_VIEW_ARGS = ("contract_id", "work_id", "party_id")


def _start_request() -> None:
    g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
    g.started = time.perf_counter()
    tracked = {k: v for k, v in (request.view_args or {}).items() if k in _TRACKED_VIEW_ARGS}
    set_request_context(request_id=g.request_id, method=request.method, path=request.path, **tracked)


def _finish_request(response: Response) -> Response:
    elapsed_ms = (time.perf_counter() - g.started) * 1000 if "started" in g else 0.0
    status = response.status_code
    if status >= 500:
        log = logger.error
    elif status >= 400:
        log = logger.warning
    else:
        log = logger.info
    log(
        f"{request.method} {request.path} -> {status}",
        extra={"status_code": status, "duration_ms": round(elapsed_ms, 2)},
    )
    if "request_id" in g:
        response.headers["X-Request-ID"] = g.request_id
    return response


def _end_request(exception=None) -> None:
    if exception is not None:
        logger.error(
            f"Unhandled error on {request.method} {request.path}",
            exc_info=exception,
            extra={"request_id": g.get("request_id", "unknown")},
        )
    clear_request_context()


def setup_request_logging(app: Flask) -> None:
    """Attach request id tracking and access logging to ``app``."""
    app.before_request(_start_request)
    app.after_request(_finish_request)
    app.teardown_request(_end_request)
