"""Store schemas for API requests and responses"""

from pydantic import BaseModel, Field, model_validator
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime


class StoreKeySchema(BaseModel):
    """Identity of one store"""
    chain_code: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)


class StoreResponse(BaseModel):
    """Schema for a stored store"""
    chain_code: str
    code: str
    type: str
    address: str
    city: str
    zipcode: str
    lat: Optional[float] = None
    lon: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RemoteStoreResponse(BaseModel):
    """Schema for a store as listed by the inventory API"""
    chain_code: str
    code: str
    type: str
    address: str
    city: str
    zipcode: str
    lat: Optional[float] = None
    lon: Optional[float] = None

    class Config:
        from_attributes = True


class StoreStatsResponse(BaseModel):
    total: int
    geocoded: int
    missing_coordinates: int


class BackfillSummary(BaseModel):
    attempted: int
    updated: int
    geocode_failures: int


class StoreErrorResponse(BaseModel):
    chain_code: str
    code: str
    kind: str
    detail: Optional[str] = None


class SyncSummary(BaseModel):
    """Rows actually written by a sync run"""
    added: int
    removed: int
    updated: int
    geocode_failures: int
    errors: List[StoreErrorResponse] = []
    failed_chains: List[str] = []


class StoreListResponse(BaseModel):
    """Schema for GET /stores"""
    success: bool = True
    data: List[StoreResponse]
    stats: StoreStatsResponse
    backfill: BackfillSummary
    sync: Optional[SyncSummary] = None


class RemoteStoreListResponse(BaseModel):
    """Schema for the pass-through remote listing"""
    success: bool = True
    chain: str
    data: List[RemoteStoreResponse]
    failed_chains: List[str] = []


class ChainListResponse(BaseModel):
    success: bool = True
    chains: List[str]


class DeleteStoresRequest(BaseModel):
    """
    Exactly one of:
    - {chain_code, code}: delete one store
    - {chain_code}: delete a whole chain
    - {ids: [{chain_code, code}, ...]}: delete a list of stores
    """
    chain_code: Optional[str] = Field(None, min_length=1)
    code: Optional[str] = Field(None, min_length=1)
    ids: Optional[List[StoreKeySchema]] = None

    @model_validator(mode='after')
    def validate_one_form(self) -> 'DeleteStoresRequest':
        if self.ids is not None:
            if self.chain_code is not None or self.code is not None:
                raise ValueError('ids cannot be combined with chain_code or code')
            return self
        if self.chain_code is None:
            raise ValueError('Provide chain_code, chain_code and code, or ids')
        return self


class DeleteStoresResponse(BaseModel):
    success: bool = True
    deleted_count: int


class GeoJSONGeometry(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: List[float]  # [lon, lat]


class GeoJSONFeature(BaseModel):
    type: Literal["Feature"] = "Feature"
    geometry: GeoJSONGeometry
    properties: Dict[str, Any]


class GeoJSONFeatureCollection(BaseModel):
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: List[GeoJSONFeature]
