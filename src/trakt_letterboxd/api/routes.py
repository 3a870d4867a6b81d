from __future__ import annotations

from dataclasses import asdict

import structlog
from fastapi import APIRouter, HTTPException, Query

from trakt_letterboxd.core import exporter
from trakt_letterboxd.core.csv_export import ExportResult, FilesystemError
from trakt_letterboxd.core.schemas import ExportResponse, HistoryResponse, MovieRecordItem
from trakt_letterboxd.core.trakt_api import ConfigurationError, UpstreamError

log = structlog.get_logger(__name__)

router = APIRouter()

_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


def describe_upstream_error(err: UpstreamError) -> str:
    text = f"{err.status}: {err.status_text}."
    if err.status == 404:
        return f"{text} Please check username and try again."
    if err.status in (400, 401, 403):
        return f"{text} Bad request, please try again later or contact us to resolve it."
    if err.status == 500:
        return f"{text} Server error, please try again later or contact us to resolve it."
    if err.status in (502, 503, 504, 520, 521, 522):
        return f"{text} Service unavailable, please try again later or contact us to resolve it."
    return text


def _http_status_for(err: UpstreamError) -> int:
    if err.status == 404:
        return 404
    if 400 <= err.status < 500:
        return 400
    return 502


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/api/users/{username}/history", response_model=HistoryResponse)
async def history(
    username: str,
    start_date: str | None = Query(default=None, pattern=_DATE_PATTERN),
    end_date: str | None = Query(default=None, pattern=_DATE_PATTERN),
) -> HistoryResponse:
    try:
        records = await exporter.generate_export(username, start_date, end_date, raw=True)
    except UpstreamError as e:
        raise HTTPException(status_code=_http_status_for(e), detail=describe_upstream_error(e)) from e
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e

    return HistoryResponse(
        username=username,
        record_count=len(records),
        records=[MovieRecordItem(**asdict(r)) for r in records],
    )


@router.post("/api/users/{username}/export", response_model=ExportResponse)
async def export(
    username: str,
    start_date: str | None = Query(default=None, pattern=_DATE_PATTERN),
    end_date: str | None = Query(default=None, pattern=_DATE_PATTERN),
) -> ExportResponse:
    try:
        records = await exporter.generate_export(username, start_date, end_date, raw=True)
        result: ExportResult = await exporter.write_export(username, records)
    except UpstreamError as e:
        raise HTTPException(status_code=_http_status_for(e), detail=describe_upstream_error(e)) from e
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    except FilesystemError as e:
        log.error("export_write_failed", user=username, error=str(e))
        raise HTTPException(status_code=500, detail="Could not write export file") from e

    return ExportResponse(
        username=username,
        filename=result.path.name,
        zipped=result.zipped,
        record_count=len(records),
    )
