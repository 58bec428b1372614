import logging
import math
from typing import Dict, Optional

from sqlalchemy import or_, select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.db import transaction, count_rows, delete_by_id
from core.metrics import track_performance
from core.prometheus_metrics import prometheus_collector
from models import (
    BodyType,
    ChargingType,
    Location,
    Manufacturer,
    Segment,
    Trip,
    VehicleModel,
    VehicleVariant,
)
from schemas.trip import TripCreate, TripUpdate
from services.entity_resolver import EntityResolver
from services.exceptions import DatabaseQueryError, TripNotFoundError
from services.location_resolver import LocationResolver
from services.parsing import normalize_enum, parse_trip_date

logger = logging.getLogger(__name__)

# Any of these in a patch re-resolves the whole manufacturer/model/variant chain
VEHICLE_FIELDS = frozenset({
    "manufacturer", "model", "body_type", "segment",
    "battery_kwh", "range_km", "charging_type", "price_eur",
})

SCALAR_FIELDS = ("distance_km", "co2_g_per_km", "grid_intensity_gco2_per_kwh")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def _with_chain(stmt):
    return stmt.options(
        selectinload(Trip.vehicle_variant)
        .selectinload(VehicleVariant.model)
        .selectinload(VehicleModel.manufacturer),
        selectinload(Trip.origin),
        selectinload(Trip.destination),
    )


class TripService:
    """
    Write path for trips: create, sparse update and cascading delete.

    A trip references one VehicleVariant (and through it a VehicleModel and a
    Manufacturer) plus an origin and a destination Location. Those dependents
    are created lazily by the resolvers when a trip first needs them, and
    removed by `delete_trip` once the last trip referencing them is gone.

    Every write runs inside a single transaction on the injected session; any
    failure rolls the whole chain back. Store failures surface as
    DatabaseQueryError, domain errors propagate unchanged.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.entities = EntityResolver(db)
        self.locations = LocationResolver(db)

    async def _load_trip(self, trip_id: int, for_update: bool = False) -> Optional[Trip]:
        stmt = _with_chain(select(Trip).where(Trip.id == trip_id))
        if for_update:
            stmt = stmt.with_for_update(of=Trip)
        stmt = stmt.execution_options(populate_existing=True)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    @track_performance(service_name="TripService")
    async def get_trip(self, trip_id: int) -> Trip:
        try:
            trip = await self._load_trip(trip_id)
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e))
        if trip is None:
            raise TripNotFoundError(trip_id)
        return trip

    @track_performance(service_name="TripService")
    async def list_trips(self, page: Optional[int] = 1, limit: Optional[int] = DEFAULT_PAGE_SIZE) -> Dict:
        """
        Returns one page of trips, newest first, with their relations loaded.

        `limit` is clamped to 1..100 and `page` to >= 1.
        """
        take = min(max(limit or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE)
        page = max(page or 1, 1)

        try:
            stmt = _with_chain(
                select(Trip).order_by(Trip.id.desc()).offset((page - 1) * take).limit(take)
            )
            items = (await self.db.execute(stmt)).scalars().all()
            total = (await self.db.execute(select(func.count(Trip.id)))).scalar_one()
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e))

        return {
            "data": list(items),
            "meta": {
                "page": page,
                "limit": take,
                "total": total,
                "pages": max(1, math.ceil(total / take)),
            },
        }

    @track_performance(service_name="TripService")
    async def create_trip(self, row: TripCreate) -> Trip:
        """
        Materializes a trip from one flat row.

        Resolves the vehicle chain and both locations, then looks for an
        existing trip with the same (trip_date, variant, origin, destination,
        distance_km). Emission fields are not part of that identity: a
        resubmitted row returns the existing trip untouched.
        """
        body_type = normalize_enum(BodyType, row.body_type, "body_type")
        segment = normalize_enum(Segment, row.segment, "segment")
        charging_type = normalize_enum(ChargingType, row.charging_type, "charging_type")
        trip_date = parse_trip_date(row.trip_date)

        try:
            async with transaction(self.db):
                variant = await self.entities.resolve_variant(
                    row.manufacturer,
                    row.model,
                    body_type,
                    segment,
                    row.battery_kwh,
                    row.range_km,
                    charging_type,
                    row.price_eur,
                )
                origin = await self.locations.resolve_location(row.origin_city, row.origin_country)
                destination = await self.locations.resolve_location(
                    row.destination_city, row.destination_country
                )

                existing = (
                    await self.db.execute(
                        select(Trip.id)
                        .where(
                            Trip.trip_date == trip_date,
                            Trip.vehicle_variant_id == variant.id,
                            Trip.origin_id == origin.id,
                            Trip.destination_id == destination.id,
                            Trip.distance_km == row.distance_km,
                        )
                        .order_by(Trip.id)
                        .limit(1)
                    )
                ).scalar_one_or_none()

                if existing is not None:
                    logger.info("Trip already imported, returning existing row", extra={"trip_id": existing})
                    return await self._load_trip(existing)

                trip = Trip(
                    trip_date=trip_date,
                    distance_km=row.distance_km,
                    co2_g_per_km=row.co2_g_per_km,
                    grid_intensity_gco2_per_kwh=row.grid_intensity_gco2_per_kwh,
                    vehicle_variant_id=variant.id,
                    origin_id=origin.id,
                    destination_id=destination.id,
                )
                self.db.add(trip)
                await self.db.flush()
                logger.info("Created trip", extra={"trip_id": trip.id, "variant_id": variant.id})

                return await self._load_trip(trip.id)
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e))

    @track_performance(service_name="TripService")
    async def update_trip(self, trip_id: int, patch: TripUpdate) -> Trip:
        """
        Applies a sparse patch to a trip.

        Vehicle fields: if any is present, missing ones are backfilled from the
        trip's current chain and the chain is resolved again; the trip is
        relinked to whatever variant that yields. Body type and segment only
        overwrite an existing model when they are in the patch. The previous
        variant is left in place even if nothing references it any more.

        Origin and destination are recomputed independently, each only when
        its city or country is present. Scalars change only when present.
        """
        changes = patch.present_fields()

        # Validate before touching the store so bad input never opens a transaction
        trip_date = parse_trip_date(changes["trip_date"]) if "trip_date" in changes else None
        body_type = normalize_enum(BodyType, changes["body_type"], "body_type") if "body_type" in changes else None
        segment = normalize_enum(Segment, changes["segment"], "segment") if "segment" in changes else None
        charging_type = (
            normalize_enum(ChargingType, changes["charging_type"], "charging_type")
            if "charging_type" in changes else None
        )

        try:
            async with transaction(self.db):
                trip = await self._load_trip(trip_id, for_update=True)
                if trip is None:
                    raise TripNotFoundError(trip_id)

                if VEHICLE_FIELDS & changes.keys():
                    current_variant = trip.vehicle_variant
                    current_model = current_variant.model

                    model_updates = {}
                    if body_type is not None:
                        model_updates["body_type"] = body_type
                    if segment is not None:
                        model_updates["segment"] = segment

                    variant = await self.entities.resolve_variant(
                        changes.get("manufacturer", current_model.manufacturer.name),
                        changes.get("model", current_model.name),
                        body_type or current_model.body_type,
                        segment or current_model.segment,
                        changes.get("battery_kwh", current_variant.battery_kwh),
                        changes.get("range_km", current_variant.range_km),
                        charging_type or current_variant.charging_type,
                        changes.get("price_eur", current_variant.price_eur),
                        model_updates=model_updates,
                    )
                    if variant.id != trip.vehicle_variant_id:
                        logger.info(
                            "Relinking trip to another vehicle variant",
                            extra={"trip_id": trip.id, "from_variant": trip.vehicle_variant_id, "to_variant": variant.id},
                        )
                    trip.vehicle_variant_id = variant.id

                if "origin_city" in changes or "origin_country" in changes:
                    origin = await self.locations.resolve_location(
                        changes.get("origin_city", trip.origin.city),
                        changes.get("origin_country", trip.origin.country),
                    )
                    trip.origin_id = origin.id

                if "destination_city" in changes or "destination_country" in changes:
                    destination = await self.locations.resolve_location(
                        changes.get("destination_city", trip.destination.city),
                        changes.get("destination_country", trip.destination.country),
                    )
                    trip.destination_id = destination.id

                if trip_date is not None:
                    trip.trip_date = trip_date
                for field in SCALAR_FIELDS:
                    if field in changes:
                        setattr(trip, field, changes[field])

                await self.db.flush()
                return await self._load_trip(trip.id)
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e))

    @track_performance(service_name="TripService")
    async def delete_trip(self, trip_id: int) -> Dict[str, bool]:
        """
        Deletes a trip and every dependent row it was the last user of.

        Order matters: the trip row goes first, then each reference count is
        taken, so a count of zero really means "orphaned".

        Vehicle chain: variant if no trip uses it, then model if no variant
        uses it, then manufacturer if no model uses it. Locations: each of
        origin/destination is removed only when no remaining trip references
        it from either column.

        The trip and its dependents are row-locked first so a concurrent
        create cannot attach to a row between its count and its delete.
        """
        try:
            async with transaction(self.db):
                trip = await self._load_trip(trip_id, for_update=True)
                if trip is None:
                    raise TripNotFoundError(trip_id)

                variant_id = trip.vehicle_variant_id
                model_id = trip.vehicle_variant.model_id
                manufacturer_id = trip.vehicle_variant.model.manufacturer_id
                # a trip may start and end at the same location
                location_ids = list(dict.fromkeys((trip.origin_id, trip.destination_id)))

                await self._lock_dependents(manufacturer_id, model_id, variant_id, location_ids)

                await delete_by_id(self.db, Trip, trip_id)

                if await count_rows(self.db, Trip, Trip.vehicle_variant_id == variant_id) == 0:
                    await self._cascade_delete(VehicleVariant, variant_id)

                    if await count_rows(self.db, VehicleVariant, VehicleVariant.model_id == model_id) == 0:
                        await self._cascade_delete(VehicleModel, model_id)

                        if await count_rows(self.db, VehicleModel, VehicleModel.manufacturer_id == manufacturer_id) == 0:
                            await self._cascade_delete(Manufacturer, manufacturer_id)

                for location_id in location_ids:
                    referenced = await count_rows(
                        self.db,
                        Trip,
                        or_(Trip.origin_id == location_id, Trip.destination_id == location_id),
                    )
                    if referenced == 0:
                        await self._cascade_delete(Location, location_id)
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e))

        logger.info("Deleted trip", extra={"trip_id": trip_id})
        return {"ok": True}

    async def _lock_dependents(self, manufacturer_id: int, model_id: int, variant_id: int, location_ids) -> None:
        # parents before children, locations by id, to keep lock order stable
        for model, ids in (
            (Manufacturer, [manufacturer_id]),
            (VehicleModel, [model_id]),
            (VehicleVariant, [variant_id]),
            (Location, sorted(location_ids)),
        ):
            await self.db.execute(
                select(model.id).where(model.id.in_(ids)).order_by(model.id).with_for_update()
            )

    async def _cascade_delete(self, model, row_id: int) -> None:
        await delete_by_id(self.db, model, row_id)
        prometheus_collector.record_cascade_deletion(model.__tablename__)
        logger.info("Removed orphaned row", extra={"table": model.__tablename__, "row_id": row_id})
