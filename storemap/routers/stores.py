"""Stores router - local store mirror, sync trigger, GeoJSON feed and deletion"""

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from typing import Annotated, Optional
import logging

from ..schemas.stores import (
    StoreResponse,
    RemoteStoreResponse,
    StoreStatsResponse,
    BackfillSummary,
    StoreErrorResponse,
    SyncSummary,
    StoreListResponse,
    RemoteStoreListResponse,
    DeleteStoresRequest,
    DeleteStoresResponse,
    GeoJSONGeometry,
    GeoJSONFeature,
    GeoJSONFeatureCollection,
)
from ..core.exceptions import (
    ConfigurationError,
    ConflictError,
    DatabaseUnavailableError,
    NotFoundError,
    PersistenceError,
    SyncInProgressError,
    UpstreamError,
    UpstreamServiceError,
)
from ..dependencies import (
    get_cijene_client,
    get_current_user,
    get_store_repository,
    get_sync_service,
)
from ..models.store import StoreKey
from ..models.user import User
from ..services.cijene_api import ALL_CHAINS, CijeneClient
from ..services.store_repository import StoreRepository
from ..services.store_sync_service import (
    DeleteByChain,
    DeleteByKey,
    DeleteByKeys,
    StoreSyncService,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def upstream_http_error(e: UpstreamError) -> HTTPException:
    """Missing credentials are our fault (500); anything else upstream is a 502"""
    if isinstance(e, ConfigurationError):
        return UpstreamServiceError(str(e), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return UpstreamServiceError(str(e))


@router.get("", response_model=StoreListResponse)
async def list_stores(
    service: Annotated[StoreSyncService, Depends(get_sync_service)],
    chain: str = Query(ALL_CHAINS, min_length=1, description='Chain code or "all"'),
    sync: bool = Query(False, description="Reconcile against the inventory API first"),
):
    """
    List stores from the local mirror.

    Stores without coordinates are geocoded on every call. With sync=true the
    mirror is first reconciled against the inventory API.
    """
    try:
        result = await service.get_stores(chain=chain, sync=sync)
    except SyncInProgressError as e:
        raise ConflictError(str(e))
    except UpstreamError as e:
        logger.error(f"[STORES] Sync of '{chain}' failed: {e}")
        raise upstream_http_error(e)
    except PersistenceError as e:
        raise DatabaseUnavailableError(e)

    sync_summary = None
    if result.reconcile is not None:
        sync_summary = SyncSummary(
            added=result.reconcile.added,
            removed=result.reconcile.removed,
            updated=result.reconcile.updated,
            geocode_failures=result.reconcile.geocode_failures,
            errors=[StoreErrorResponse(**error.to_dict()) for error in result.reconcile.errors],
            failed_chains=result.failed_chains,
        )

    return StoreListResponse(
        data=[StoreResponse.model_validate(record) for record in result.stores],
        stats=StoreStatsResponse(**result.stats.to_dict()),
        backfill=BackfillSummary(**result.backfill.to_dict()),
        sync=sync_summary,
    )


@router.get("/geojson", response_model=GeoJSONFeatureCollection)
async def stores_geojson(
    repository: Annotated[StoreRepository, Depends(get_store_repository)],
    chain: Optional[str] = Query(None, description="Limit to one chain"),
):
    """Geocoded stores as a GeoJSON FeatureCollection for the map"""
    chain_code = None if chain in (None, ALL_CHAINS) else chain
    try:
        records = await repository.list_geocoded(chain_code)
    except PersistenceError as e:
        raise DatabaseUnavailableError(e)

    features = [
        GeoJSONFeature(
            geometry=GeoJSONGeometry(coordinates=[record.lon, record.lat]),
            properties={
                'chain_code': record.chain_code,
                'code': record.code,
                'type': record.type,
                'address': record.address,
                'city': record.city,
                'zipcode': record.zipcode,
            },
        )
        for record in records
    ]
    return GeoJSONFeatureCollection(features=features)


@router.get("/remote", response_model=RemoteStoreListResponse)
async def remote_stores(
    source: Annotated[CijeneClient, Depends(get_cijene_client)],
    chain: str = Query("konzum", min_length=1, description='Chain code or "all"'),
):
    """Stores straight from the inventory API, without touching the mirror"""
    try:
        listing = await source.fetch_listing(chain)
    except UpstreamError as e:
        raise upstream_http_error(e)

    return RemoteStoreListResponse(
        chain=chain,
        data=[RemoteStoreResponse.model_validate(store) for store in listing.stores],
        failed_chains=listing.failed_chains,
    )


@router.get("/{chain_code}/{code}", response_model=StoreResponse)
async def get_store(
    chain_code: str,
    code: str,
    repository: Annotated[StoreRepository, Depends(get_store_repository)],
):
    try:
        record = await repository.find_by_key(chain_code, code)
    except PersistenceError as e:
        raise DatabaseUnavailableError(e)

    if record is None:
        raise NotFoundError(f"Store {chain_code}/{code} not found")
    return StoreResponse.model_validate(record)


@router.delete("", response_model=DeleteStoresResponse)
async def delete_stores(
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[StoreSyncService, Depends(get_sync_service)],
    payload: DeleteStoresRequest = Body(...),
):
    """
    Delete one store, a whole chain or a list of stores.

    Deleting a single store that does not exist is a 404.
    """
    if payload.ids is not None:
        criteria = DeleteByKeys(tuple(StoreKey(key.chain_code, key.code) for key in payload.ids))
    elif payload.code is not None:
        criteria = DeleteByKey(payload.chain_code, payload.code)
    else:
        criteria = DeleteByChain(payload.chain_code)

    try:
        outcome = await service.delete_stores(criteria)
    except PersistenceError as e:
        raise DatabaseUnavailableError(e)

    logger.info(f"[STORES] {current_user.email} deleted stores: {criteria}")

    if isinstance(criteria, DeleteByKey):
        if not outcome:
            raise NotFoundError(f"Store {criteria.chain_code}/{criteria.code} not found")
        return DeleteStoresResponse(deleted_count=1)
    return DeleteStoresResponse(deleted_count=outcome)
