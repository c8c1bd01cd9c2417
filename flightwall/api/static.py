"""Static text endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from flightwall.api.dependencies import get_gateway
from flightwall.services.gateway import Gateway

router = APIRouter(tags=["static"])


@router.api_route(
    "/ads.txt",
    methods=["GET", "HEAD"],
    response_class=PlainTextResponse,
    summary="Ad-seller declaration",
)
def ads_txt(gateway: Gateway = Depends(get_gateway)) -> PlainTextResponse:
    return PlainTextResponse(
        gateway.settings.ads_txt.strip() + "\n",
        headers={"Cache-Control": "public, max-age=3600"},
    )
