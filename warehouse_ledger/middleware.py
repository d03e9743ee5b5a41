import logging
import time

from fastapi import FastAPI, Request
from starlette.responses import Response

logger = logging.getLogger('warehouse_ledger.access')

ROBOTS_HEADER = "noindex, nofollow, noarchive"


def install_request_logging(app: FastAPI) -> None:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Robots-Tag"] = ROBOTS_HEADER
        logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response
