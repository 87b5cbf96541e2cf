"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

from dotenv import load_dotenv

load_dotenv()

import logging
import time
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from beershop.api import auth, health, pages
from beershop.api.v1 import router as v1_router
from beershop.core.config import Settings, get_settings
from beershop.core.database import SessionLocal, check_db_connected
from beershop.core.errors import PayloadTooLarge, ShopError, TooManyRequests
from beershop.core.logging_config import configure_logging
from beershop.services.credentials import CredentialStore
from beershop.services.files import PathResolver
from beershop.services.gates import build_gate_chain, build_route_policies
from beershop.services.outbound import OutboundGuard
from beershop.services.rate_limit import RateLimiter, RateLimitRule, client_identity
from beershop.services.sessions import SessionManager

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Content-Security-Policy": "default-src 'self'; frame-ancestors 'none'; object-src 'none'",
}


def security_headers_for(settings: Settings) -> dict[str, str]:
    headers = dict(SECURITY_HEADERS)
    if settings.APP_ENV == "prod":
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return headers


def ensure_database_available(session_factory: Callable[[], Session] = SessionLocal) -> None:
    """Exit the process with status 1 when the database cannot be reached."""
    db = session_factory()
    try:
        if not check_db_connected(db):
            logger.critical("Database is unreachable; refusing to start")
            raise SystemExit(1)
    finally:
        db.close()


class StreamedBodyLimit:
    """
    Raw ASGI middleware counting body bytes as they arrive.

    Chunked requests carry no Content-Length, so only this stops them before
    a handler or the multipart parser has buffered the excess.
    """

    def __init__(self, app: ASGIApp, max_bytes: int) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return
        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise PayloadTooLarge()
            return message

        await self.app(scope, limited_receive, send)


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_database_available()
    app.state.files.ensure_root()
    logger.info("Beershop service starting up", extra={"environment": app.state.settings.APP_ENV})
    yield
    logger.info("Beershop service shutting down")


def _register_middleware(app: FastAPI, settings: Settings) -> None:
    global_rule = RateLimitRule("global", settings.RATE_LIMIT_GLOBAL)

    # Registered innermost first: the request log ends up outermost.
    app.add_middleware(StreamedBodyLimit, max_bytes=settings.MAX_REQUEST_BYTES)

    @app.middleware("http")
    async def global_rate_limit(request: Request, call_next):
        client_id = client_identity(request, settings.TRUST_PROXY_HEADERS)
        try:
            app.state.limiter.hit(global_rule, client_id)
        except TooManyRequests as e:
            return JSONResponse(status_code=e.status_code, content=e.to_body(), headers=e.headers)
        return await call_next(request)

    @app.middleware("http")
    async def request_size_cap(request: Request, call_next):
        declared = request.headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > settings.MAX_REQUEST_BYTES:
            error = PayloadTooLarge()
            return JSONResponse(status_code=error.status_code, content=error.to_body())
        return await call_next(request)

    headers = security_headers_for(settings)

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        for name, value in headers.items():
            response.headers.setdefault(name, value)
        return response

    @app.middleware("http")
    async def request_log(request: Request, call_next):
        """Method, path, client, status and latency; never bodies, cookies or query strings."""
        start = time.perf_counter()
        response: Response = await call_next(request)
        logger.info(
            "%s %s status=%d",
            request.method,
            request.url.path,
            response.status_code,
            extra={
                "client": request.client.host if request.client else "unknown",
                "latency_ms": round((time.perf_counter() - start) * 1000, 1),
            },
        )
        return response


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ShopError)
    async def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s on %s", type(exc).__name__, request.url.path)
        return JSONResponse(
            status_code=exc.status_code, content=exc.to_body(), headers=exc.headers or None
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = [
            {"field": ".".join(str(p) for p in err.get("loc", ())), "reason": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"error": "Validation error", "details": details})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        # Rendered outside the http middlewares, so the security headers are set here.
        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error"},
            headers=security_headers_for(request.app.state.settings),
        )


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the application. Collaborators (session manager, gate chain,
    rate limiter, outbound guard, path resolver) are created once here and
    kept on app.state; nothing mutates them after start-up.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="Beershop API",
        version="0.1.0",
        docs_url="/docs" if settings.APP_ENV == "dev" else None,
        redoc_url="/redoc" if settings.APP_ENV == "dev" else None,
        lifespan=lifespan,
    )

    limiter = RateLimiter.from_uri(settings.RATE_LIMIT_STORAGE_URI)
    sessions = SessionManager(max_age=timedelta(seconds=settings.SESSION_MAX_AGE_SEC))
    app.state.settings = settings
    app.state.limiter = limiter
    app.state.sessions = sessions
    app.state.credentials = CredentialStore(rounds=settings.BCRYPT_ROUNDS)
    app.state.gates = build_gate_chain(limiter, sessions, settings.CSRF_PROTECTED_PREFIXES)
    app.state.policies = build_route_policies(settings.RATE_LIMIT_AUTH, settings.RATE_LIMIT_UPLOAD)
    app.state.outbound = OutboundGuard(
        timeout=settings.OUTBOUND_TIMEOUT_SEC, max_bytes=settings.OUTBOUND_MAX_BYTES
    )
    app.state.files = PathResolver(settings.UPLOAD_DIR)
    app.state.templates = Environment(
        loader=FileSystemLoader(TEMPLATES_DIR), autoescape=select_autoescape(["html"])
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", settings.CSRF_HEADER_NAME],
    )
    _register_middleware(app, settings)
    _register_exception_handlers(app)

    app.include_router(pages.router, tags=["pages"])
    app.include_router(auth.router, tags=["auth"])
    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(v1_router, prefix="/v1")
    return app


app = create_app()
