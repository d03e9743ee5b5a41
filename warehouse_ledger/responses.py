from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def ok(data: Any = None, *, message: str | None = None) -> dict:
    return {'success': True, 'message': message, 'data': jsonable_encoder(data), 'errors': []}


def error_response(status_code: int, message: str, errors: list[str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={'success': False, 'message': message, 'data': None, 'errors': errors if errors is not None else [message]},
    )
