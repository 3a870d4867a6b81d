from __future__ import annotations

import asyncio
import csv
import io
import os
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Final

import structlog

from trakt_letterboxd.core.records import MovieRecord
from trakt_letterboxd.core.trakt_api import TraktExportError

# Letterboxd's importer rejects files much above 1900 rows.
CHUNK_LIMIT: Final[int] = 1900

CSV_HEADER: Final[list[str]] = [
    "imdbID",
    "tmdbID",
    "Title",
    "Year",
    "WatchedDate",
    "Rating10",
    "Rewatch",
]

log = structlog.get_logger(__name__)


class FilesystemError(TraktExportError):
    pass


@dataclass(frozen=True)
class ExportResult:
    path: Path
    zipped: bool


def _default_export_dir() -> Path:
    return Path(os.environ.get("TRAKT_LETTERBOXD_EXPORT_DIR", "exports")).resolve()


def _field(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _row(record: MovieRecord) -> list[str]:
    return [
        _field(record.imdb_id),
        _field(record.tmdb_id),
        _field(record.title),
        _field(record.year),
        _field(record.watched_date),
        _field(record.rating10),
        _field(record.rewatch),
    ]


def render_csv(records: list[MovieRecord]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    writer.writerows(_row(r) for r in records)
    return buf.getvalue()


def chunk_records(records: list[MovieRecord], size: int = CHUNK_LIMIT) -> list[list[MovieRecord]]:
    return [records[i : i + size] for i in range(0, len(records), size)]


def _write_csv(path: Path, records: list[MovieRecord]) -> Path:
    try:
        path.write_text(render_csv(records), encoding="utf-8")
    except OSError as e:
        raise FilesystemError(f"Could not write {path.name}: {e}") from e
    return path


def _write_zip(archive: Path, members: list[Path]) -> Path:
    try:
        with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for member in members:
                zf.write(member, arcname=member.name)
    except OSError as e:
        raise FilesystemError(f"Could not create {archive.name}: {e}") from e
    return archive


def _chunk_index(path: Path, base_name: str) -> int:
    suffix = path.stem[len(base_name) + 1 :]
    return int(suffix) if suffix.isdigit() else -1


async def export_records(
    records: list[MovieRecord],
    base_name: str,
    *,
    out_dir: Path | None = None,
) -> ExportResult:
    """Write records as a Letterboxd import file.

    Up to ``CHUNK_LIMIT`` rows go to ``<base>.csv``. Larger exports are split
    into ``<base>_1.csv``, ``<base>_2.csv``, ... which are then bundled into
    ``<base>.zip``; each chunk is a standalone CSV with its own header.
    """

    target = out_dir or _default_export_dir()
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Could not create export directory {target}: {e}") from e

    if len(records) <= CHUNK_LIMIT:
        path = await asyncio.to_thread(_write_csv, target / f"{base_name}.csv", records)
        log.info("csv_written", path=str(path), rows=len(records))
        return ExportResult(path=path, zipped=False)

    chunks = chunk_records(records)
    await asyncio.gather(
        *(
            asyncio.to_thread(_write_csv, target / f"{base_name}_{n}.csv", chunk)
            for n, chunk in enumerate(chunks, start=1)
        )
    )

    members = sorted(
        (p for p in target.glob(f"{base_name}_*.csv") if _chunk_index(p, base_name) > 0),
        key=lambda p: _chunk_index(p, base_name),
    )
    archive = await asyncio.to_thread(_write_zip, target / f"{base_name}.zip", members)
    log.info("csv_archive_written", path=str(archive), chunks=len(members), rows=len(records))
    return ExportResult(path=archive, zipped=True)
