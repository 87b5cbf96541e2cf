"""Session-cookie login, registration, logout and CSRF token issue."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from beershop.api.deps import (
    clear_session_cookie,
    enforce,
    read_payload,
    set_session_cookie,
)
from beershop.core.database import get_db
from beershop.schemas.auth import AuthResponse, CsrfTokenResponse, MessageResponse
from beershop.schemas.requests import LOGIN, REGISTER
from beershop.services.sessions import SessionContext
from beershop.services.validation import validated

router = APIRouter()


@router.post("/register", response_model=AuthResponse)
async def register(
    session: Annotated[SessionContext, Depends(enforce("auth_attempt"))],
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
) -> AuthResponse:
    """
    Create a user with role "user" and sign them in.

    Accepts JSON or a urlencoded form with name, email, password, an optional
    address and an optional profile picture name. Admin accounts are only
    created from the CLI.
    """
    state = request.app.state
    payload = validated(await read_payload(request, state.settings.MAX_JSON_BYTES), REGISTER)
    user_id = await run_in_threadpool(
        lambda: state.credentials.register(
            db,
            name=payload.name,
            email=payload.email,
            raw_password=payload.password,
            address=payload.address,
            profile_pic=payload.profile_pic,
        )
    )
    signed_in = await run_in_threadpool(
        state.sessions.begin_authenticated_session, db, session, user_id, "user"
    )
    set_session_cookie(response, state.settings, signed_in)
    return AuthResponse(message="Registration successful", user_id=user_id)


@router.post("/login", response_model=AuthResponse)
async def login(
    session: Annotated[SessionContext, Depends(enforce("auth_attempt"))],
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
) -> AuthResponse:
    """
    Check email and password and issue a fresh session.

    Unknown email and wrong password produce the same 400 response. Whatever
    session the client held before is deleted, never upgraded.
    """
    state = request.app.state
    payload = validated(await read_payload(request, state.settings.MAX_JSON_BYTES), LOGIN)
    user = await run_in_threadpool(
        state.credentials.authenticate, db, payload.email, payload.password
    )
    signed_in = await run_in_threadpool(
        state.sessions.begin_authenticated_session, db, session, user.id, user.role
    )
    set_session_cookie(response, state.settings, signed_in)
    return AuthResponse(message="Login successful", user_id=user.id)


@router.post("/logout", response_model=MessageResponse)
def logout(
    session: Annotated[SessionContext, Depends(enforce("public"))],
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    state = request.app.state
    state.sessions.revoke(db, session)
    clear_session_cookie(response, state.settings)
    return MessageResponse(message="Logged out")


@router.get("/csrf-token", response_model=CsrfTokenResponse)
def csrf_token(
    session: Annotated[SessionContext, Depends(enforce("public"))],
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
) -> CsrfTokenResponse:
    """Return the session's CSRF token, starting an anonymous session when there is none."""
    state = request.app.state
    if session.record_id is None:
        session = state.sessions.begin_anonymous_session(db)
        set_session_cookie(response, state.settings, session)
    return CsrfTokenResponse(csrf_token=session.csrf_token)
