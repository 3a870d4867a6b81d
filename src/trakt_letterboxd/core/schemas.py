from __future__ import annotations

from pydantic import BaseModel, Field


class MovieRecordItem(BaseModel):
    imdb_id: str | None = None
    tmdb_id: str | None = None
    title: str
    year: int | None = None
    watched_date: str = ""
    rating10: int | None = None
    rewatch: bool = False


class HistoryResponse(BaseModel):
    username: str
    record_count: int = Field(ge=0)
    records: list[MovieRecordItem]


class ExportResponse(BaseModel):
    username: str
    filename: str
    zipped: bool
    record_count: int = Field(ge=0)
