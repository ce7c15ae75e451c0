from pydantic import BaseModel, ConfigDict, Field


class RestroomRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = Field(min_length=1)
    latitude: float
    longitude: float
    area_name: str = "Unknown area"
    accessible: bool | None = None
    baby_change: bool | None = None
    no_payment: bool | None = None
    all_gender: bool | None = None
    radar_key: bool | None = None
    notes: str | None = None
    opening_times: str | None = None
    updated_at: str | None = None
    distance_km: float | None = Field(default=None, ge=0)


class SourceDescriptor(BaseModel):
    name: str
    reference_url: str
    dataset_export_url: str | None = None
    endpoint: str | None = None
    license: str | None = None
    cached_at: str


class NearestQuery(BaseModel):
    lat: float
    lon: float
    limit: int
    region: str


class NearestRestroomsResult(BaseModel):
    query: NearestQuery
    source: SourceDescriptor
    toilets: list[RestroomRecord]
