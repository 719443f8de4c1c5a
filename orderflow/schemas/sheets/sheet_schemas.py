from pydantic import BaseModel, Field
from typing import List, Optional


class SheetRequest(BaseModel):
    # relative to SHEET_DIR; defaults to SHEET_EXPORT_PATH
    path: Optional[str] = None


class SheetRowError(BaseModel):
    row: int
    message: str


class SheetExportData(BaseModel):
    path: str
    exported: int


class SheetImportData(BaseModel):
    path: str
    imported: int
    skipped: int
    order_ids: List[str] = Field(default_factory=list)
    errors: List[SheetRowError] = Field(default_factory=list)
