from typing import Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.db import count_rows
from models import Location, Manufacturer, Trip, VehicleModel, VehicleVariant
from services.exceptions import DatabaseQueryError


class ResultService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_entity_statistics(self) -> Dict[str, int]:
        """Row counts of every normalized table."""
        try:
            return {
                "manufacturers": await count_rows(self.db, Manufacturer),
                "models": await count_rows(self.db, VehicleModel),
                "variants": await count_rows(self.db, VehicleVariant),
                "locations": await count_rows(self.db, Location),
                "trips": await count_rows(self.db, Trip),
            }
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e))
