import logging

from sqlalchemy.ext.asyncio import AsyncSession

from core.db import find_or_create
from models import Location

logger = logging.getLogger(__name__)


class LocationResolver:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve_location(self, city: str, country: str) -> Location:
        """Find-or-create by the exact (city, country) pair. No case or whitespace folding."""
        location, created = await find_or_create(self.db, Location, {"city": city, "country": country})
        if created:
            logger.info("Created location", extra={"location_id": location.id, "city": city, "country": country})
        return location
