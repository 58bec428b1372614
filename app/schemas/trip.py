from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.enums import BodyType, ChargingType, Segment
from schemas.common import CamelModel, Money, UtcDateTime


class TripCreate(BaseModel):
    """One flat CSV row. Enum-like fields are free text and normalized by the service."""
    trip_date: str = Field(..., min_length=1, description='"DD/MM/YYYY" or "YYYY-MM-DD"')
    manufacturer: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    body_type: str = Field(..., min_length=1, examples=["Compact SUV"])
    segment: str = Field(..., min_length=1, examples=["Mid-size"])
    battery_kwh: int = Field(..., ge=0)
    range_km: int = Field(..., ge=0)
    charging_type: str = Field(..., min_length=1, examples=["DC"])
    price_eur: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    origin_city: str = Field(..., min_length=1)
    origin_country: str = Field(..., min_length=1)
    destination_city: str = Field(..., min_length=1)
    destination_country: str = Field(..., min_length=1)
    distance_km: int = Field(..., ge=0)
    co2_g_per_km: int = Field(..., ge=0)
    grid_intensity_gco2_per_kwh: int = Field(..., ge=0)


class TripUpdate(BaseModel):
    """Sparse patch: only fields present (and not null) are applied."""
    trip_date: Optional[str] = Field(None, min_length=1)
    manufacturer: Optional[str] = Field(None, min_length=1)
    model: Optional[str] = Field(None, min_length=1)
    body_type: Optional[str] = Field(None, min_length=1)
    segment: Optional[str] = Field(None, min_length=1)
    battery_kwh: Optional[int] = Field(None, ge=0)
    range_km: Optional[int] = Field(None, ge=0)
    charging_type: Optional[str] = Field(None, min_length=1)
    price_eur: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    origin_city: Optional[str] = Field(None, min_length=1)
    origin_country: Optional[str] = Field(None, min_length=1)
    destination_city: Optional[str] = Field(None, min_length=1)
    destination_country: Optional[str] = Field(None, min_length=1)
    distance_km: Optional[int] = Field(None, ge=0)
    co2_g_per_km: Optional[int] = Field(None, ge=0)
    grid_intensity_gco2_per_kwh: Optional[int] = Field(None, ge=0)

    def present_fields(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class ManufacturerOut(CamelModel):
    id: int
    name: str
    created_at: UtcDateTime
    updated_at: UtcDateTime


class VehicleModelOut(CamelModel):
    id: int
    manufacturer_id: int
    name: str
    body_type: BodyType
    segment: Segment
    created_at: UtcDateTime
    updated_at: UtcDateTime
    manufacturer: ManufacturerOut


class VehicleVariantOut(CamelModel):
    id: int
    model_id: int
    battery_kwh: int
    range_km: int
    charging_type: ChargingType
    price_eur: Money
    created_at: UtcDateTime
    updated_at: UtcDateTime
    model: VehicleModelOut


class LocationOut(CamelModel):
    id: int
    city: str
    country: str
    created_at: UtcDateTime
    updated_at: UtcDateTime


class TripOut(CamelModel):
    id: int
    trip_date: UtcDateTime
    distance_km: int
    # emission columns keep their snake_case names on the wire
    co2_g_per_km: int = Field(serialization_alias="co2_g_per_km")
    grid_intensity_gco2_per_kwh: int = Field(serialization_alias="grid_intensity_gco2_per_kwh")
    vehicle_variant_id: int
    origin_id: int
    destination_id: int
    created_at: UtcDateTime
    updated_at: UtcDateTime
    vehicle_variant: VehicleVariantOut
    origin: LocationOut
    destination: LocationOut


class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class TripPage(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    data: List[TripOut]
    meta: PageMeta


class DeleteResult(BaseModel):
    ok: bool = True
