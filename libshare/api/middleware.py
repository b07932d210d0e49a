"""HTTP middleware: access logging and failure containment."""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("libshare.access")


async def recover_from_errors(request: Request, call_next):
    """Turn any unhandled handler error into a plain 500 for this request only."""
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return PlainTextResponse("Internal server error", status_code=500)


async def log_access(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    client = request.client.host if request.client else "-"
    access_logger.info(
        "New request method=%s remote_addr=%s url=%s status=%s time=%.2fms",
        request.method,
        client,
        request.url.path,
        response.status_code,
        (time.perf_counter() - start) * 1000,
    )
    return response


def install_middleware(app: FastAPI) -> None:
    # Added last runs first: the access log wraps the recovery layer so that
    # recovered failures are logged too.
    app.middleware("http")(recover_from_errors)
    app.middleware("http")(log_access)
