import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .schemas import ErrorResponse
from ..errors import CriteriaError, InvalidCategoryError, UpstreamDataError, UpstreamFetchError

log = structlog.get_logger()


def error_response(status: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content=ErrorResponse(errorCode=code, message=message).model_dump())


def install_error_handlers(app: FastAPI):
    """Map domain exceptions to the ``{errorCode, message}`` error body."""

    @app.exception_handler(InvalidCategoryError)
    async def _invalid_category(request: Request, exc: InvalidCategoryError):
        return error_response(400, exc.code, str(exc))

    @app.exception_handler(CriteriaError)
    async def _invalid_criteria(request: Request, exc: CriteriaError):
        return error_response(400, exc.code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = ".".join(str(p) for p in first.get("loc", ()))
        message = f"{loc}: {first.get('msg')}" if loc else "invalid request"
        return error_response(400, "invalid_criteria", message)

    @app.exception_handler(UpstreamDataError)
    async def _upstream_data(request: Request, exc: UpstreamDataError):
        log.error("upstream_data_error", path=request.url.path, code=exc.code)
        return error_response(502, "upstream_data_error", exc.code)

    @app.exception_handler(UpstreamFetchError)
    async def _upstream_fetch(request: Request, exc: UpstreamFetchError):
        log.error("upstream_unavailable", path=request.url.path, code=exc.code, status=exc.status)
        return error_response(503, "upstream_unavailable", exc.code)

    @app.exception_handler(httpx.TransportError)
    async def _upstream_transport(request: Request, exc: httpx.TransportError):
        log.error("upstream_unavailable", path=request.url.path, error=type(exc).__name__)
        return error_response(503, "upstream_unavailable", "upstream_transport_error")
