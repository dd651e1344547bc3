"""Thin pass-through proxies for the geocoding and exchange-rate APIs."""

import logging
from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from travelmaker.api.deps import get_http_client
from travelmaker.config import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


async def _forward(client: httpx.AsyncClient, url: str, **kwargs: object) -> JSONResponse:
    try:
        upstream = await client.get(url, **kwargs)  # type: ignore[arg-type]
        payload = upstream.json()
    except httpx.HTTPError as e:
        logger.warning(f"Proxy request to {url} failed: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Upstream unavailable")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Upstream returned invalid JSON"
        )
    return JSONResponse(content=payload, status_code=upstream.status_code)


@router.get("/nominatim/search")
async def nominatim_search(
    request: Request,
    client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> JSONResponse:
    """Forward a place search with its query string unchanged."""
    return await _forward(
        client,
        f"{settings.nominatim_base_url.rstrip('/')}/search",
        params=list(request.query_params.multi_items()),
        headers={"User-Agent": settings.nominatim_user_agent},
    )


@router.get("/exchange-rate/latest/{currency_code}")
async def latest_exchange_rate(
    currency_code: str,
    client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> JSONResponse:
    """Forward a latest-rates lookup for one base currency."""
    if not currency_code.isalpha() or len(currency_code) != 3:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid currency code")
    return await _forward(
        client, f"{settings.exchange_rate_base_url.rstrip('/')}/latest/{currency_code.upper()}"
    )
