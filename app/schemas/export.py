from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ExportFilters(BaseModel):
    """Trip-only filters. Text filters are case-insensitive substring matches."""
    date_from: Optional[str] = Field(None, description='"YYYY-MM-DD" or "DD/MM/YYYY"')
    date_to: Optional[str] = Field(None, description='"YYYY-MM-DD" or "DD/MM/YYYY"')
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    origin_country: Optional[str] = None
    destination_country: Optional[str] = None


class ExportRequest(BaseModel):
    # table is validated by the export service so unsupported names map to 400
    table: Optional[str] = None
    fields: Optional[List[str]] = None
    limit: Optional[int] = None
    order: Optional[Literal["asc", "desc"]] = None
    filters: Optional[ExportFilters] = None
