import logging
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.db import find_or_create
from models import BodyType, ChargingType, Manufacturer, Segment, VehicleModel, VehicleVariant

logger = logging.getLogger(__name__)


class EntityResolver:
    """
    Resolves the Manufacturer -> VehicleModel -> VehicleVariant chain by natural key.

    Every level is find-or-create: rows are only ever inserted here, never
    deleted. Enum values must already be normalized by the caller.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve_manufacturer(self, name: str) -> Manufacturer:
        manufacturer, created = await find_or_create(self.db, Manufacturer, {"name": name})
        if created:
            logger.info("Created manufacturer", extra={"manufacturer_id": manufacturer.id, "manufacturer": name})
        return manufacturer

    async def resolve_model(
        self,
        manufacturer: Manufacturer,
        name: str,
        body_type: BodyType,
        segment: Segment,
        model_updates: Optional[Dict[str, object]] = None,
    ) -> VehicleModel:
        """
        Finds or creates a model under `manufacturer`.

        `body_type` and `segment` are only used when the model is created. An
        existing model keeps its values unless `model_updates` carries fields
        the caller supplied explicitly (update path).
        """
        model, created = await find_or_create(
            self.db,
            VehicleModel,
            {"manufacturer_id": manufacturer.id, "name": name},
            {"body_type": body_type, "segment": segment},
        )
        if created:
            logger.info("Created vehicle model", extra={"model_id": model.id, "model": name})
        elif model_updates:
            for field, value in model_updates.items():
                setattr(model, field, value)
            await self.db.flush()
        return model

    async def resolve_variant(
        self,
        manufacturer_name: str,
        model_name: str,
        body_type: BodyType,
        segment: Segment,
        battery_kwh: int,
        range_km: int,
        charging_type: ChargingType,
        price_eur: Decimal,
        model_updates: Optional[Dict[str, object]] = None,
    ) -> VehicleVariant:
        """
        Resolves the full vehicle chain and returns the variant.

        The variant's natural key is (model, battery_kwh, range_km, charging_type).
        When it already exists its price is overwritten with `price_eur`.
        """
        manufacturer = await self.resolve_manufacturer(manufacturer_name)
        model = await self.resolve_model(manufacturer, model_name, body_type, segment, model_updates)

        variant, created = await find_or_create(
            self.db,
            VehicleVariant,
            {
                "model_id": model.id,
                "battery_kwh": battery_kwh,
                "range_km": range_km,
                "charging_type": charging_type,
            },
            {"price_eur": price_eur},
        )
        if created:
            logger.info("Created vehicle variant", extra={"variant_id": variant.id, "model_id": model.id})
        else:
            variant.price_eur = price_eur
            await self.db.flush()
        return variant
