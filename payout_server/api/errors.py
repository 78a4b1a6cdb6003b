import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError
from starlette.exceptions import HTTPException as StarletteHTTPException

from payout_server.errors import PayoutError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": {"message": message}})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(PayoutError)
    async def handle_payout_error(request: Request, exc: PayoutError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(DBAPIError)
    async def handle_database_error(request: Request, exc: DBAPIError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        return error_response(
            UpstreamError.status_code, "La base de datos no está disponible; reintentar"
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        return error_response(ValidationError.status_code, f"Solicitud inválida: {problems}")

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))
