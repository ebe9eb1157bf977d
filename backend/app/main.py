from __future__ import annotations

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response
from sqlalchemy.exc import SQLAlchemyError

from app.api.router import api_router
from app.core.errors import Fault, Responded, classify, finalize
from app.core.responses import INTERNAL_SERVER_ERROR_DETAIL, NotFound, json_error
from app.core.settings import get_settings


logger = logging.getLogger(__name__)


def _with_trace_id_header(response: Response, trace_id: str | None) -> Response:
    if trace_id:
        response.headers["X-Trace-Id"] = trace_id
    return response


def render_fault(request: Request, fault: Fault) -> Response:
    """Turn a finalized fault into the response written to the client.

    Cause chains go to the log only. Faults without a user-facing response
    get the fixed generic 500 body.
    """

    trace_id = getattr(request.state, "trace_id", None)
    method = request.method
    path = request.url.path
    outcome = finalize(fault)

    if isinstance(outcome, Responded):
        if outcome.cause is not None:
            logger.info(
                "Handled error (trace_id=%s method=%s path=%s status=%s) cause=%s",
                trace_id,
                method,
                path,
                outcome.response.status_code,
                outcome.cause,
            )
        return _with_trace_id_header(outcome.response, trace_id)

    logger.error(
        "Unhandled error (trace_id=%s method=%s path=%s) error=%s",
        trace_id,
        method,
        path,
        outcome.error,
        exc_info=(type(fault), fault, fault.__traceback__),
    )
    return _with_trace_id_header(
        json_error(INTERNAL_SERVER_ERROR_DETAIL, 500), trace_id
    )


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(title="Cargo Registry API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_allow_origin],
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def _trace_id_middleware(request, call_next):
        trace_id = request.headers.get("X-Trace-Id") or str(uuid.uuid4())
        request.state.trace_id = trace_id
        response = await call_next(request)
        response.headers["X-Trace-Id"] = trace_id
        return response

    @app.exception_handler(Fault)
    async def _fault_handler(request: Request, exc: Fault):
        return render_fault(request, exc)

    @app.exception_handler(SQLAlchemyError)
    async def _storage_error_handler(request: Request, exc: SQLAlchemyError):
        return render_fault(request, classify(exc))

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError):
        messages = [
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        ]
        return render_fault(request, Fault.bad_request("; ".join(messages)))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return render_fault(request, Fault.user_facing(NotFound()))
        # Other routing failures (such as 405) are the client's mistake.
        detail = exc.detail if isinstance(exc.detail, str) else "Bad Request"
        return render_fault(request, Fault.bad_request(detail))

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception):
        # Starlette re-raises after this response is sent so servers still log it.
        return render_fault(request, classify(exc))

    app.include_router(api_router)

    return app


app = create_app()
