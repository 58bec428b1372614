from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from core.db import get_db
from schemas.export import ExportRequest
from services.export_service import ExportService

router = APIRouter(prefix="/export", tags=["export"])


@router.post("")
async def export_csv(req: ExportRequest, db: AsyncSession = Depends(get_db)):
    filename, csv = await ExportService(db).export_csv(req)
    return Response(
        content=csv,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
