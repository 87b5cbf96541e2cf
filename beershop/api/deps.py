"""Shared route dependencies: session loading, gate enforcement, capped body reading."""

import json
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import parse_qsl

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from beershop.core.config import Settings
from beershop.core.database import get_db
from beershop.core.errors import FieldError, PayloadTooLarge, ValidationError
from beershop.services.gates import RequestContext
from beershop.services.rate_limit import client_identity
from beershop.services.sessions import SessionContext


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def load_session(request: Request, db: Session = Depends(get_db)) -> SessionContext:
    """Resolve the session cookie; cached per request by FastAPI."""
    settings: Settings = request.app.state.settings
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    return await run_in_threadpool(request.app.state.sessions.load, db, token)


def enforce(policy_name: str) -> Callable[..., Awaitable[SessionContext]]:
    """
    Dependency factory running the gate chain under the named route policy.

    List it first in a handler's signature: handlers never declare body
    parameters, so nothing is read from the request before the gates pass.
    """

    async def dependency(
        request: Request,
        session: SessionContext = Depends(load_session),
    ) -> SessionContext:
        state = request.app.state
        settings: Settings = state.settings
        ctx = RequestContext(
            method=request.method,
            path=request.url.path,
            client_id=client_identity(request, settings.TRUST_PROXY_HEADERS),
            session=session,
            csrf_submitted=request.headers.get(settings.CSRF_HEADER_NAME),
        )
        state.gates.run(ctx, state.policies[policy_name])
        return session

    return dependency


def _content_type(request: Request) -> str:
    return request.headers.get("content-type", "").split(";")[0].strip().lower()


def _check_declared_length(request: Request, limit: int) -> None:
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLarge()


async def read_body(request: Request, limit: int) -> bytes:
    """Read the raw body, aborting as soon as it passes limit bytes."""
    _check_declared_length(request, limit)
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLarge()
    return bytes(body)


async def read_payload(request: Request, limit: int) -> dict[str, Any]:
    """Decode a JSON object or urlencoded form body of at most limit bytes."""
    body = await read_body(request, limit)
    content_type = _content_type(request)
    if content_type == "application/json":
        # ValueError also covers bad UTF-8 and integers past the digit limit.
        try:
            data = json.loads(body)
        except (ValueError, RecursionError) as e:
            raise ValidationError.single("body", "must be valid JSON") from e
        if not isinstance(data, dict):
            raise ValidationError.single("body", "must be a JSON object")
        return data
    if content_type == "application/x-www-form-urlencoded":
        try:
            return dict(parse_qsl(body.decode("utf-8"), keep_blank_values=True))
        except UnicodeDecodeError as e:
            raise ValidationError.single("body", "must be UTF-8") from e
    raise ValidationError.single("body", "must be application/json or a urlencoded form")


async def read_upload(request: Request, limit: int, field: str = "file") -> tuple[str, bytes]:
    """
    Return (client file name, content) of one multipart file part.

    The file part is read into memory only up to limit + 1 bytes.
    """
    # Multipart framing adds a little on top of the file itself.
    _check_declared_length(request, limit + 16 * 1024)
    if _content_type(request) != "multipart/form-data":
        raise ValidationError.single(field, "must be sent as multipart/form-data")
    async with request.form(max_files=1, max_fields=4) as form:
        upload = form.get(field)
        if not isinstance(upload, UploadFile):
            raise ValidationError([FieldError(field, "is required")], "No file uploaded")
        data = await upload.read(limit + 1)
        filename = upload.filename or ""
    if len(data) > limit:
        raise PayloadTooLarge()
    return filename, data


def set_session_cookie(response: Response, settings: Settings, session: SessionContext) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session.token or "",
        max_age=settings.SESSION_MAX_AGE_SEC,
        path="/",
        httponly=True,
        secure=settings.APP_ENV == "prod",
        samesite="lax",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.APP_ENV == "prod",
        samesite="lax",
    )
