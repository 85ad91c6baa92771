"""Error taxonomy shared by services and routers.

Services raise these; the API layer turns them into
``{"detail": {"code": ..., "message": ...}}`` responses.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class CausalLabError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CausalLabError):
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(CausalLabError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidStateError(CausalLabError):
    status_code = 409
    code = "INVALID_STATE"


class PreconditionError(CausalLabError):
    status_code = 412
    code = "PRECONDITION_FAILED"


class ConflictError(CausalLabError):
    status_code = 409
    code = "CONFLICT"


class StorageError(CausalLabError):
    status_code = 500
    code = "STORAGE_ERROR"


async def _handle_causal_lab_error(request: Request, exc: CausalLabError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": {"code": exc.code, "message": exc.message}},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CausalLabError, _handle_causal_lab_error)
