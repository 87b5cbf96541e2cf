"""Server-rendered pages. Templates auto-escape every value, including query text."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session, selectinload

from beershop.api.deps import enforce
from beershop.core.database import get_db
from beershop.core.errors import NotFound
from beershop.models import Beer, User
from beershop.schemas.requests import BEER_PAGE
from beershop.services.sessions import SessionContext
from beershop.services.validation import validated

router = APIRouter()

MAX_MESSAGE_LEN = 200
LOGIN_MESSAGE = "Please log in to continue"
REGISTER_MESSAGE = "Please register to continue"


def _message(request: Request, default: str) -> str:
    return (request.query_params.get("message") or default)[:MAX_MESSAGE_LEN]


def render_page(request: Request, template_name: str, context: dict) -> HTMLResponse:
    # Page routes are sync, so rendering already runs in the threadpool.
    template = request.app.state.templates.get_template(template_name)
    return HTMLResponse(template.render(**context))


@router.get("/", response_class=HTMLResponse)
def login_page(request: Request):
    return render_page(
        request, "user.html", {"message": _message(request, LOGIN_MESSAGE)}
    )


@router.get("/register", response_class=HTMLResponse)
def register_page(request: Request):
    return render_page(
        request, "user-register.html", {"message": _message(request, REGISTER_MESSAGE)}
    )


@router.get("/profile", response_class=HTMLResponse)
def profile_page(
    session: Annotated[SessionContext, Depends(enforce("user"))],
    request: Request,
    db: Annotated[Session, Depends(get_db)],
):
    """The signed-in user's loved beers next to the full catalogue."""
    user = (
        db.query(User)
        .options(selectinload(User.beers))
        .filter(User.id == session.user_id, User.deleted_at.is_(None))
        .first()
    )
    if user is None:
        raise NotFound("User not found")
    beers = db.query(Beer).filter(Beer.deleted_at.is_(None)).order_by(Beer.id).all()
    return render_page(
        request, "profile.html", {"user": user, "beers": beers}
    )


@router.get("/beer", response_class=HTMLResponse)
def beer_page(
    session: Annotated[SessionContext, Depends(enforce("user"))],
    request: Request,
    db: Annotated[Session, Depends(get_db)],
):
    query = validated(dict(request.query_params), BEER_PAGE)
    beer = (
        db.query(Beer)
        .options(selectinload(Beer.users))
        .filter(Beer.id == query.id, Beer.deleted_at.is_(None))
        .first()
    )
    if beer is None:
        raise NotFound("Beer not found")
    loves_beer = any(u.id == session.user_id for u in beer.users)
    message = query.relationship or ("You Love THIS BEER!!" if loves_beer else "...")
    user = db.get(User, session.user_id)
    return render_page(
        request, "beer.html", {"beers": [beer], "message": message, "user": user}
    )
