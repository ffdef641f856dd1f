"""
api/responses.py -- Builders for the {success, data|error} JSON envelope.

Every admin response goes through one of these two functions so clients can
branch on `success` without inspecting status codes. Admin data must never be
served from a cache, so both set Cache-Control: no-store.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse, FieldError


def success(data: Any, status_code: int = 200) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content={"success": True, "data": jsonable_encoder(data)},
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


def failure(
    code: str,
    message: str,
    status_code: int,
    details: Optional[list[dict]] = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(
            code=code,
            message=message,
            details=[FieldError(**d) for d in details] if details else None,
        )
    )
    resp = JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))
    resp.headers["Cache-Control"] = "no-store"
    return resp
