"""Status proxy, allow-listed redirect, batch init and guarded outbound fetch."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from beershop.api.deps import enforce, read_payload
from beershop.schemas.requests import BEER_INIT, STATUS_BRAND, TARGET_URL
from beershop.schemas.system import FetchResponse, InitResponse, StatusResponse
from beershop.services.redirects import check_redirect_target
from beershop.services.sessions import SessionContext
from beershop.services.validation import validated

router = APIRouter()


@router.get("/status/{brand}", response_model=StatusResponse)
async def brand_status(
    session: Annotated[SessionContext, Depends(enforce("user"))],
    brand: str,
    request: Request,
) -> StatusResponse:
    """Ask the fixed status service about brand; brand only ever becomes a query parameter."""
    state = request.app.state
    brand = validated({"brand": brand}, STATUS_BRAND).brand
    result = await state.outbound.fetch(
        state.settings.STATUS_URL,
        params={"q": brand},
        max_bytes=state.settings.STATUS_MAX_BYTES,
    )
    return StatusResponse(status=result.status_code)


@router.get("/redirect")
def redirect(
    session: Annotated[SessionContext, Depends(enforce("user"))],
    request: Request,
) -> RedirectResponse:
    url = validated(dict(request.query_params), TARGET_URL).url
    target = check_redirect_target(url, request.app.state.settings.REDIRECT_ALLOWED_HOSTS)
    return RedirectResponse(target, status_code=302)


@router.post("/init", response_model=InitResponse)
async def init_beers(
    session: Annotated[SessionContext, Depends(enforce("admin"))],
    request: Request,
) -> InitResponse:
    """Validate a structured beer batch; the body is plain JSON and is never deserialized into objects."""
    payload = validated(
        await read_payload(request, request.app.state.settings.MAX_JSON_BYTES), BEER_INIT
    )
    return InitResponse(message="Initialization completed", count=len(payload.beers))


@router.get("/test", response_model=FetchResponse, response_model_exclude_none=True)
async def fetch_url(
    session: Annotated[SessionContext, Depends(enforce("user"))],
    request: Request,
) -> FetchResponse:
    """GET a user-supplied http(s) URL whose host resolves only to public addresses."""
    url = validated(dict(request.query_params), TARGET_URL).url
    result = await request.app.state.outbound.fetch(url)
    return FetchResponse(status=result.status_code, location=result.location)
