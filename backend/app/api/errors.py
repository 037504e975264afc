"""
Exception handlers: every rejection renders as {"detail": ..., "kind": ...}.
"""

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

from app.core.exceptions import DomainError, StorageUnavailableError
from app.core.logging import get_logger

logger = get_logger(__name__)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("domain_error", kind=exc.kind, message=exc.message, status_code=exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind},
        headers={"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("request_validation_failed", errors=len(exc.errors()))
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors()), "kind": "validation_error"},
    )


async def storage_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("storage_unavailable", error=str(exc))
    return await domain_error_handler(request, StorageUnavailableError())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(OperationalError, storage_error_handler)
    app.add_exception_handler(InterfaceError, storage_error_handler)
