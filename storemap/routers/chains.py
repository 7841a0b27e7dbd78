"""Chains router - chain codes known to the inventory API"""

from fastapi import APIRouter, Depends
from typing import Annotated

from ..core.exceptions import UpstreamError
from ..dependencies import get_cijene_client
from ..schemas.stores import ChainListResponse
from ..services.cijene_api import CijeneClient
from .stores import upstream_http_error

router = APIRouter()


@router.get("", response_model=ChainListResponse)
async def list_chains(source: Annotated[CijeneClient, Depends(get_cijene_client)]):
    try:
        chains = await source.list_chains()
    except UpstreamError as e:
        raise upstream_http_error(e)
    return ChainListResponse(chains=chains)
