from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.db import get_db
from schemas.trip import DeleteResult, TripCreate, TripOut, TripPage, TripUpdate
from services.trip_service import TripService

router = APIRouter(prefix="/trips", tags=["trips"])


@router.get("", response_model=TripPage)
async def get_trips(
    page: Optional[int] = Query(1),
    limit: Optional[int] = Query(10),
    db: AsyncSession = Depends(get_db),
):
    """Paginated trips, newest first, with vehicle chain and locations."""
    return await TripService(db).list_trips(page=page, limit=limit)


@router.get("/{trip_id}", response_model=TripOut)
async def get_trip(trip_id: int, db: AsyncSession = Depends(get_db)):
    return await TripService(db).get_trip(trip_id)


@router.post("", response_model=TripOut, status_code=201)
async def create_trip(row: TripCreate, db: AsyncSession = Depends(get_db)):
    """Create one trip from a single CSV-shaped row. Resubmitting the same row returns the existing trip."""
    return await TripService(db).create_trip(row)


@router.put("/{trip_id}", response_model=TripOut)
async def update_trip(trip_id: int, patch: TripUpdate, db: AsyncSession = Depends(get_db)):
    """Sparse update: only the fields present in the body change."""
    return await TripService(db).update_trip(trip_id, patch)


@router.delete("/{trip_id}", response_model=DeleteResult)
async def delete_trip(trip_id: int, db: AsyncSession = Depends(get_db)):
    return await TripService(db).delete_trip(trip_id)
