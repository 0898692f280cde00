import json
import logging
import time
import uuid
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from elearning.core.config import settings
from elearning.core.errors import DomainError
from elearning.routers import admin, auth, content, enrollments, health, modules, progress, quizzes


def _error_payload(*, error_code: str, error_message: str, request_id: str | None) -> dict:
    return {
        "ok": False,
        "error_code": error_code,
        "error_message": error_message,
        "request_id": request_id,
    }


def create_app() -> FastAPI:
    logging.basicConfig(
        level=str(settings.log_level or "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    app = FastAPI(title="E-Learning API", version="1.0.0")

    logger = logging.getLogger("elearning")

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)

    allow_origins = [o.strip() for o in str(settings.cors_allow_origins or "").split(",") if o.strip()]
    if "*" in allow_origins:
        raise RuntimeError("CORS_ALLOW_ORIGINS must not include '*' when allow_credentials=true")

    is_prod = (settings.app_env or "").strip().lower() in {"prod", "production"}

    def _request_id(request: Request) -> str | None:
        rid = getattr(getattr(request, "state", None), "request_id", None)
        rid = str(rid or "").strip()
        return rid or None

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        t0 = time.perf_counter()
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = rid
        status_code: int | None = None
        try:
            if request.method in {"POST", "PUT", "PATCH", "DELETE"}:
                origin = (request.headers.get("origin") or "").strip()
                if origin and origin not in allow_origins:
                    response = JSONResponse(
                        status_code=403,
                        content=_error_payload(error_code="forbidden", error_message="invalid origin", request_id=rid),
                    )
                else:
                    response = await call_next(request)
            else:
                response = await call_next(request)
            status_code = int(getattr(response, "status_code", 0) or 0)
        except Exception:
            status_code = 500
            raise
        finally:
            path = getattr(getattr(request, "url", None), "path", "")
            if not path.startswith("/health"):
                logger.info(
                    json.dumps(
                        {
                            "ts": datetime.now(timezone.utc).isoformat(),
                            "rid": rid,
                            "user_id": getattr(getattr(request, "state", None), "user_id", None),
                            "method": request.method,
                            "path": path,
                            "status": status_code,
                            "duration_ms": int((time.perf_counter() - t0) * 1000),
                        },
                        ensure_ascii=False,
                    )
                )
        response.headers["X-Request-ID"] = rid

        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if is_prod:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        rid = _request_id(request)
        if exc.status_code >= 500:
            logger.error("domain error %s: %s", exc.error_code, exc.message, extra={"rid": rid})
        return JSONResponse(
            status_code=int(exc.status_code),
            content=_error_payload(error_code=exc.error_code, error_message=exc.message, request_id=rid),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        rid = _request_id(request)
        detail = exc.detail
        if isinstance(detail, dict):
            error_code = str(detail.get("error_code") or "http_error")
            error_message = str(detail.get("error_message") or detail.get("detail") or "request failed")
        else:
            error_code = {401: "unauthorized", 403: "forbidden", 404: "not_found"}.get(int(exc.status_code), "http_error")
            error_message = str(detail or "request failed")

        return JSONResponse(
            status_code=int(exc.status_code),
            content=_error_payload(error_code=error_code, error_message=error_message, request_id=rid),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = ".".join(str(p) for p in first.get("loc", ()) if p not in {"body", "query", "path", "form"})
        msg = str(first.get("msg") or "invalid request")
        return JSONResponse(
            status_code=400,
            content=_error_payload(
                error_code="validation_error",
                error_message=f"{loc}: {msg}" if loc else msg,
                request_id=_request_id(request),
            ),
        )

    @app.exception_handler(PoolTimeoutError)
    async def pool_timeout_handler(request: Request, exc: PoolTimeoutError):
        rid = _request_id(request)
        logger.warning("database pool exhausted", extra={"rid": rid})
        return JSONResponse(
            status_code=503,
            content=_error_payload(
                error_code="pool_exhausted",
                error_message="service busy, retry shortly",
                request_id=rid,
            ),
            headers={"Retry-After": "1"},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.exception("unhandled exception", extra={"rid": rid})
        return JSONResponse(
            status_code=500,
            content=_error_payload(error_code="internal_error", error_message="internal server error", request_id=rid),
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"] if is_prod else ["*"],
        allow_headers=["authorization", "content-type", "x-request-id"] if is_prod else ["*"],
    )

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(admin.router)
    app.include_router(modules.router)
    app.include_router(content.router)
    app.include_router(enrollments.router)
    app.include_router(quizzes.router)
    app.include_router(progress.router)

    return app


app = create_app()
