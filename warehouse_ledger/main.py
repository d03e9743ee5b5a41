import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from warehouse_ledger.config import settings
from warehouse_ledger.db import SessionLocal
from warehouse_ledger.errors import InventoryError, NotFound
from warehouse_ledger.logging_setup import setup_logging
from warehouse_ledger.middleware import install_request_logging
from warehouse_ledger.responses import error_response, ok
from warehouse_ledger.routers import dashboard, notifications, reference, stock
from warehouse_ledger.services.alert_dispatcher import get_alert_dispatcher
from warehouse_ledger.services.expiry_scheduler import ExpiryScanScheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings)
    scheduler: ExpiryScanScheduler = app.state.expiry_scheduler
    if settings.expiry_scan_enabled:
        scheduler.start()
    yield
    scheduler.stop()


app = FastAPI(title='Warehouse Ledger', lifespan=lifespan)
app.state.expiry_scheduler = ExpiryScanScheduler(
    SessionLocal,
    get_alert_dispatcher(),
    hour=settings.expiry_scan_hour,
    minute=settings.expiry_scan_minute,
)

install_request_logging(app)

app.include_router(stock.router)
app.include_router(dashboard.router)
app.include_router(notifications.router)
app.include_router(reference.router)


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return error_response(404, str(exc))


@app.exception_handler(InventoryError)
async def business_error_handler(request: Request, exc: InventoryError):
    return error_response(400, str(exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        f"{'.'.join(str(part) for part in err['loc'] if part != 'body')}: {err['msg']}" for err in exc.errors()
    ]
    return error_response(400, 'Validation failed', errors)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception('Unhandled error on %s %s', request.method, request.url.path)
    return error_response(500, 'Internal server error')


@app.get('/health')
def health():
    return ok({'status': 'ok'})


@app.get('/robots.txt', response_class=PlainTextResponse)
def robots_txt() -> str:
    return 'User-agent: *\nDisallow: /\n'
