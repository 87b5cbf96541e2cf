"""Beer listing, picture download and allow-listed search."""

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session, selectinload
from starlette.concurrency import run_in_threadpool

from beershop.api.deps import enforce
from beershop.core.database import get_db
from beershop.core.errors import ValidationError
from beershop.models import Beer
from beershop.schemas.beer import BeerSummary, OrderItem
from beershop.schemas.requests import BEER_PICTURE, SEARCH_BY
from beershop.services.sessions import SessionContext
from beershop.services.validation import validated

router = APIRouter()

SEARCH_COLUMNS = {"id": Beer.id, "name": Beer.name, "price": Beer.price}


@router.get("/order", response_model=list[OrderItem])
def list_orders(
    session: Annotated[SessionContext, Depends(enforce("user"))],
    db: Annotated[Session, Depends(get_db)],
) -> list[OrderItem]:
    """Every beer with the users who ordered it, limited to public fields."""
    beers = (
        db.query(Beer)
        .options(selectinload(Beer.users))
        .filter(Beer.deleted_at.is_(None))
        .order_by(Beer.id)
        .all()
    )
    return [OrderItem.model_validate(beer) for beer in beers]


@router.get("/beer-pic")
async def beer_picture(
    session: Annotated[SessionContext, Depends(enforce("user"))],
    request: Request,
) -> Response:
    """
    Serve a stored picture by its bare file name.

    Names with any directory part are refused with 403 before the file
    system is touched; unknown extensions get 400, missing files 404.
    """
    picture = validated(dict(request.query_params), BEER_PICTURE).picture
    files = request.app.state.files
    data = await run_in_threadpool(files.read, picture)
    return Response(content=data, media_type=files.content_type_for(picture))


@router.get("/search/{filter_name}/{query}", response_model=list[BeerSummary])
def search_beers(
    session: Annotated[SessionContext, Depends(enforce("user"))],
    filter_name: str,
    query: str,
    db: Annotated[Session, Depends(get_db)],
) -> list[BeerSummary]:
    model = SEARCH_BY.get(filter_name)
    if model is None:
        raise ValidationError.single("filter", f"must be one of {', '.join(SEARCH_BY)}")
    value = validated({"query": query}, model).query
    if filter_name == "price":
        value = Decimal(str(value))
    beers = (
        db.query(Beer)
        .filter(SEARCH_COLUMNS[filter_name] == value, Beer.deleted_at.is_(None))
        .order_by(Beer.id)
        .all()
    )
    return [BeerSummary.model_validate(beer) for beer in beers]
