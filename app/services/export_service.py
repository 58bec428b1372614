import enum
import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Tuple

import pandas as pd
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from core.metrics import track_performance
from models import Location, Manufacturer, Trip, VehicleModel, VehicleVariant
from schemas.common import format_decimal, format_utc
from schemas.export import ExportFilters, ExportRequest
from services.exceptions import DatabaseQueryError, ExportRequestError
from services.parsing import parse_filter_date

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 1000
# Absolute upper bound to avoid huge downloads
HARD_CAP = 10_000

# Exportable columns per table, keyed by their public (camelCase) name.
# Only fields listed here can be exported.
PRESETS: Dict[str, Tuple[type, Dict[str, object]]] = {
    "trips": (Trip, {
        "id": Trip.id,
        "tripDate": Trip.trip_date,
        "distanceKm": Trip.distance_km,
        "co2_g_per_km": Trip.co2_g_per_km,
        "grid_intensity_gco2_per_kwh": Trip.grid_intensity_gco2_per_kwh,
        "vehicleVariantId": Trip.vehicle_variant_id,
        "originId": Trip.origin_id,
        "destinationId": Trip.destination_id,
        "createdAt": Trip.created_at,
        "updatedAt": Trip.updated_at,
    }),
    "manufacturers": (Manufacturer, {
        "id": Manufacturer.id,
        "name": Manufacturer.name,
        "createdAt": Manufacturer.created_at,
        "updatedAt": Manufacturer.updated_at,
    }),
    "vehicleModels": (VehicleModel, {
        "id": VehicleModel.id,
        "manufacturerId": VehicleModel.manufacturer_id,
        "name": VehicleModel.name,
        "bodyType": VehicleModel.body_type,
        "segment": VehicleModel.segment,
        "createdAt": VehicleModel.created_at,
        "updatedAt": VehicleModel.updated_at,
    }),
    "vehicleVariants": (VehicleVariant, {
        "id": VehicleVariant.id,
        "modelId": VehicleVariant.model_id,
        "batteryKwh": VehicleVariant.battery_kwh,
        "rangeKm": VehicleVariant.range_km,
        "chargingType": VehicleVariant.charging_type,
        "priceEur": VehicleVariant.price_eur,
        "createdAt": VehicleVariant.created_at,
        "updatedAt": VehicleVariant.updated_at,
    }),
    "locations": (Location, {
        "id": Location.id,
        "city": Location.city,
        "country": Location.country,
        "createdAt": Location.created_at,
        "updatedAt": Location.updated_at,
    }),
}


def _contains(column, needle: str):
    # literal match: % and _ in the needle are escaped
    return column.icontains(needle, autoescape=True)


def apply_trip_filters(stmt, filters: ExportFilters):
    """Adds the optional trip filters; unparseable dates are ignored."""
    date_from = parse_filter_date(filters.date_from)
    date_to = parse_filter_date(filters.date_to)
    if date_from:
        stmt = stmt.where(Trip.trip_date >= date_from)
    if date_to:
        stmt = stmt.where(Trip.trip_date <= date_to)

    if filters.manufacturer or filters.model:
        stmt = stmt.join(VehicleVariant, Trip.vehicle_variant_id == VehicleVariant.id).join(
            VehicleModel, VehicleVariant.model_id == VehicleModel.id
        )
        if filters.manufacturer:
            stmt = stmt.join(Manufacturer, VehicleModel.manufacturer_id == Manufacturer.id).where(
                _contains(Manufacturer.name, filters.manufacturer)
            )
        if filters.model:
            stmt = stmt.where(_contains(VehicleModel.name, filters.model))

    if filters.origin_country:
        origin = aliased(Location)
        stmt = stmt.join(origin, Trip.origin_id == origin.id).where(
            _contains(origin.country, filters.origin_country)
        )
    if filters.destination_country:
        destination = aliased(Location)
        stmt = stmt.join(destination, Trip.destination_id == destination.id).where(
            _contains(destination.country, filters.destination_country)
        )
    return stmt


def normalize_value(value) -> str:
    """Renders one DB value as CSV text."""
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return format_decimal(value)
    if isinstance(value, datetime):
        return format_utc(value)
    if isinstance(value, enum.Enum):
        return value.name
    return str(value)


def to_csv(columns: List[str], rows: List[Dict[str, str]]) -> str:
    frame = pd.DataFrame(rows, columns=columns, dtype=str)
    return frame.to_csv(index=False, lineterminator="\n")


class ExportService:
    def __init__(self, db: AsyncSession):
        self.db = db

    @track_performance(service_name="ExportService")
    async def export_csv(self, request: ExportRequest) -> Tuple[str, str]:
        """
        Builds a CSV download for one table.

        Returns:
            tuple: (filename, csv text)

        Raises:
            ExportRequestError: missing/unsupported table or a field outside the preset
        """
        table = request.table
        if not table:
            raise ExportRequestError("Missing 'table'")
        if table not in PRESETS:
            raise ExportRequestError(f"Unsupported table: {table}")

        model, preset = PRESETS[table]
        columns = list(request.fields) if request.fields else list(preset)
        for field in columns:
            if field not in preset:
                raise ExportRequestError(f"Unknown field for {table}: {field}")

        take = min(max(request.limit or DEFAULT_LIMIT, 1), HARD_CAP)
        order = model.id.asc() if request.order == "asc" else model.id.desc()

        stmt = select(*[preset[field].label(field) for field in columns]).select_from(model)
        if table == "trips" and request.filters:
            stmt = apply_trip_filters(stmt, request.filters)
        stmt = stmt.order_by(order).limit(take)

        try:
            result = await self.db.execute(stmt)
            rows = [
                {field: normalize_value(value) for field, value in row._mapping.items()}
                for row in result.all()
            ]
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e))

        logger.info("Exported table", extra={"table": table, "rows": len(rows)})
        return f"{table}-export.csv", to_csv(columns, rows)
