"""Admin-only beer creation, picture upload and XML import."""

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from beershop.api.deps import enforce, read_payload, read_upload
from beershop.core.database import get_db
from beershop.models import Beer
from beershop.schemas.beer import BeerDetail
from beershop.schemas.requests import NEW_BEER, XML_BEER
from beershop.schemas.upload import UploadResponse
from beershop.services.documents import parse_beer_document
from beershop.services.sessions import SessionContext
from beershop.services.validation import validated

router = APIRouter()

DEFAULT_CURRENCY = "USD"
DEFAULT_STOCK = "plenty"


def create_beer(db: Session, name: str, price: float, picture: str | None = None) -> Beer:
    beer = Beer(
        name=name,
        price=Decimal(str(price)),
        currency=DEFAULT_CURRENCY,
        stock=DEFAULT_STOCK,
        picture=picture,
    )
    db.add(beer)
    db.commit()
    db.refresh(beer)
    return beer


@router.post("/new-beer", response_model=BeerDetail)
async def new_beer(
    session: Annotated[SessionContext, Depends(enforce("admin"))],
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> BeerDetail:
    payload = validated(
        await read_payload(request, request.app.state.settings.MAX_JSON_BYTES), NEW_BEER
    )
    beer = await run_in_threadpool(
        create_beer, db, payload.name, payload.price, payload.picture
    )
    return BeerDetail.model_validate(beer)


@router.post("/upload-pic", response_model=UploadResponse)
async def upload_picture(
    session: Annotated[SessionContext, Depends(enforce("admin_upload"))],
    request: Request,
) -> UploadResponse:
    """
    Store a JPEG or PNG sent as multipart field ``file``.

    The extension must be allow-listed and the content signature must agree
    with it. The stored name is random; the client's name is discarded.
    """
    state = request.app.state
    filename, data = await read_upload(request, state.settings.MAX_UPLOAD_BYTES)
    asset = await run_in_threadpool(state.files.store_image, filename, data)
    return UploadResponse(filename=asset.stored_name, mimetype=asset.content_type, size=asset.byte_size)


@router.post("/new-beer-xml", response_model=BeerDetail)
async def new_beer_from_xml(
    session: Annotated[SessionContext, Depends(enforce("admin_upload"))],
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> BeerDetail:
    """Create a beer from an uploaded <beer><name/><price/></beer> document."""
    _, data = await read_upload(request, request.app.state.settings.MAX_XML_BYTES)
    values = validated(parse_beer_document(data), XML_BEER)
    beer = await run_in_threadpool(create_beer, db, values.name, values.price)
    return BeerDetail.model_validate(beer)
