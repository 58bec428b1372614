from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.db import get_db
from schemas.result import EntityStatistics
from services.result_service import ResultService

router = APIRouter(prefix="/result", tags=["result"])


@router.get("", response_model=EntityStatistics)
async def get_entity_statistics(db: AsyncSession = Depends(get_db)):
    return await ResultService(db).get_entity_statistics()
