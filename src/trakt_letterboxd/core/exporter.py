from __future__ import annotations

import re
import time
from pathlib import Path
from uuid import uuid4

import structlog

from trakt_letterboxd.core.csv_export import ExportResult, export_records
from trakt_letterboxd.core.reconcile import WatchSource, build_movie_records
from trakt_letterboxd.core.records import MovieRecord
from trakt_letterboxd.core.trakt_api import TraktClient

log = structlog.get_logger(__name__)

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_-]+")


def export_base_name(user_id: str, *, now: float | None = None) -> str:
    """``<user>_<timestamp>_<suffix>``; unique per export so runs never share files."""

    stamp = time.strftime("%Y%m%d%H%M%S", time.gmtime(now if now is not None else time.time()))
    safe_user = _UNSAFE_RE.sub("-", user_id).strip("-") or "user"
    return f"{safe_user}_{stamp}_{uuid4().hex[:8]}"


async def generate_export(
    user_id: str,
    start_date: str | None = None,
    end_date: str | None = None,
    *,
    raw: bool = False,
    source: WatchSource | None = None,
    out_dir: Path | None = None,
) -> ExportResult | list[MovieRecord]:
    """Fetch a user's Trakt history and turn it into a Letterboxd import file.

    With ``raw=True`` the reconciled records are returned and nothing is
    written. Upstream and filesystem errors propagate unchanged.
    """

    log.info("export_started", user=user_id, start_date=start_date, end_date=end_date)

    if source is None:
        async with TraktClient() as client:
            records = await build_movie_records(client, user_id, start_date, end_date)
    else:
        records = await build_movie_records(source, user_id, start_date, end_date)

    if raw:
        return records
    return await write_export(user_id, records, out_dir=out_dir)


async def write_export(
    user_id: str, records: list[MovieRecord], *, out_dir: Path | None = None
) -> ExportResult:
    result = await export_records(records, export_base_name(user_id), out_dir=out_dir)
    log.info("export_finished", user=user_id, path=str(result.path), zipped=result.zipped)
    return result
