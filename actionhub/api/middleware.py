"""
API Middleware

Custom middleware for cross-cutting concerns.
"""

import hmac
import time
from collections.abc import Callable
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from actionhub.core.exceptions import ActionHubError
from actionhub.observability.logging import StructuredLogger, get_logger

logger = get_logger("actionhub.api")


class TracingMiddleware(BaseHTTPMiddleware):
    """
    Adds tracing headers and log context to requests.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        # Generate or extract trace ID
        trace_id = request.headers.get("X-Trace-Id", str(uuid4()))
        request_id = request.headers.get("X-Request-Id", str(uuid4()))

        request.state.trace_id = trace_id
        request.state.request_id = request_id

        start_time = time.perf_counter()

        with StructuredLogger.context(trace_id=trace_id, request_id=request_id):
            response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000

        response.headers["X-Trace-Id"] = trace_id
        response.headers["X-Request-Id"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

        return response


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Bearer-token authentication.

    Disabled when no token is configured. Health and docs paths stay public.
    """

    def __init__(
        self,
        app,
        token: str | None = None,
        public_prefixes: list[str] | None = None,
    ):
        super().__init__(app)
        self._token = token
        self._public_prefixes = public_prefixes or ["/health", "/docs", "/openapi.json"]

    def _is_public(self, path: str) -> bool:
        return any(path == p or path.startswith(p + "/") for p in self._public_prefixes)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        if not self._token or self._is_public(request.url.path):
            return await call_next(request)

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer ") and hmac.compare_digest(
            auth_header[7:].encode(), self._token.encode()
        ):
            return await call_next(request)

        return JSONResponse(
            {"error": "UNAUTHORIZED", "message": "Unauthorized", "context": {}},
            status_code=401,
        )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    ActionHubError subclasses map to their status code and to_dict() body;
    anything else is a logged 500.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        try:
            return await call_next(request)
        except ActionHubError as e:
            if e.status_code >= 500:
                logger.error("Request failed", error=e, path=request.url.path)
            else:
                logger.info("Request rejected", error_code=e.code, path=request.url.path)
            return JSONResponse(e.to_dict(), status_code=e.status_code)
        except Exception as e:
            logger.error("Unhandled error", error=e, path=request.url.path)
            return JSONResponse(
                {"error": "INTERNAL_ERROR", "message": "Internal server error", "context": {}},
                status_code=500,
            )
