from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class SkippedRow(BaseModel):
    row: int
    record_type: str
    serial_number: str


class ImportResultOut(BaseModel):
    success: bool
    computer_count: int = 0
    component_count: int = 0
    error: Optional[str] = None
    # Informational only; duplicates are never counted or reported as errors.
    skipped: list[SkippedRow] = Field(default_factory=list)
    downgraded_rows: list[int] = Field(default_factory=list)
