import logging
import traceback
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("taskhub.errors")

class ApiError(HTTPException):
    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(status_code=self.status_code, detail=message)
        self.details = details

class ValidationError(ApiError):
    status_code = 400

class ConflictError(ApiError):
    status_code = 400

class AuthenticationError(ApiError):
    status_code = 401

class MissingCredential(AuthenticationError):
    def __init__(self) -> None:
        super().__init__("Access denied. No token provided.")

class InvalidSignature(AuthenticationError):
    def __init__(self) -> None:
        super().__init__("Invalid token")

class CredentialExpired(AuthenticationError):
    def __init__(self) -> None:
        super().__init__("Token expired")

class PrincipalNotFound(AuthenticationError):
    def __init__(self) -> None:
        super().__init__("Token is valid but user not found")

class AuthorizationError(ApiError):
    status_code = 403

class NotFoundError(ApiError):
    status_code = 404

def error_body(message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if details:
        body["details"] = details
    return body

def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        where = ".".join(loc)
        parts.append(f"{where}: {err.get('msg')}" if where else str(err.get("msg")))
    return ", ".join(parts) or "Invalid request"

def install_error_handlers(app: FastAPI, *, debug: bool) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        details = getattr(exc, "details", None)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail), details),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content=error_body(_validation_message(exc)))

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        body = error_body("Internal Server Error")
        if debug:
            body["stack"] = "".join(traceback.format_exception(exc))
        return JSONResponse(status_code=500, content=body)
