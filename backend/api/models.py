from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ApiSearchRequest(BaseModel):
    region: str | None = None
    province: str | None = None
    district: str = ""
    # layer key -> checkbox state
    layers: dict[str, bool] = Field(default_factory=dict)


class ApiSyncRequest(BaseModel):
    layers: dict[str, bool] = Field(default_factory=dict)


class ApiBasemapRequest(BaseModel):
    name: str


class ApiLayerInfo(BaseModel):
    key: str
    title: str
    style: str
    status: str
    attached: bool


class ApiBounds(BaseModel):
    minLon: float
    minLat: float
    maxLon: float
    maxLat: float


class ApiSearchResponse(BaseModel):
    status: str
    found: bool
    feature: dict[str, Any] | None = None
    bounds: ApiBounds | None = None
    operations: list[list[str]] = Field(default_factory=list)
    plot: dict[str, Any]


class ApiSyncResponse(BaseModel):
    status: str
    operations: list[list[str]] = Field(default_factory=list)
    plot: dict[str, Any]


class ApiAutocompleteResponse(BaseModel):
    status: str
    regions: list[str] = Field(default_factory=list)
    provinces: list[str] = Field(default_factory=list)
    districts: list[str] = Field(default_factory=list)
