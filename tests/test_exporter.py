from __future__ import annotations

import csv
from pathlib import Path

import pytest

from trakt_letterboxd.core.csv_export import ExportResult
from trakt_letterboxd.core.exporter import export_base_name, generate_export
from trakt_letterboxd.core.trakt_api import HistoryEntry, MovieRating, UpstreamError, WatchedMovie


class AliceSource:
    def __init__(self, ratings_status: int | None = None) -> None:
        self.ratings_status = ratings_status

    async def fetch_watched_movies(self, user_id: str) -> list[WatchedMovie]:
        return [
            WatchedMovie(101, "tt0000101", "1010", "A", 2001, 1, "2020-01-05T10:00:00.000Z"),
            WatchedMovie(202, "tt0000202", "2020", "B", 2002, 2, "2021-03-10T10:00:00.000Z"),
        ]

    async def fetch_ratings(self, user_id: str) -> list[MovieRating]:
        if self.ratings_status is not None:
            raise UpstreamError(self.ratings_status, "Not Found")
        return [MovieRating(trakt_id=202, rating=8)]

    async def fetch_history(self, user_id, trakt_id, start_date=None, end_date=None):
        assert trakt_id == 202
        return [
            HistoryEntry("2019-06-01T12:00:00.000Z"),
            HistoryEntry("2021-03-10T12:00:00.000Z"),
        ]


@pytest.mark.asyncio
async def test_generate_export_writes_letterboxd_csv(tmp_path: Path) -> None:
    result = await generate_export("alice", source=AliceSource(), out_dir=tmp_path)

    assert isinstance(result, ExportResult)
    assert result.zipped is False
    assert result.path.parent == tmp_path
    assert result.path.name.startswith("alice_")

    with result.path.open(encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))

    assert rows == [
        {"imdbID": "tt0000101", "tmdbID": "1010", "Title": "A", "Year": "2001",
         "WatchedDate": "2020-01-05", "Rating10": "", "Rewatch": "false"},
        {"imdbID": "tt0000202", "tmdbID": "2020", "Title": "B", "Year": "2002",
         "WatchedDate": "2019-06-01", "Rating10": "8", "Rewatch": "true"},
        {"imdbID": "tt0000202", "tmdbID": "2020", "Title": "B", "Year": "2002",
         "WatchedDate": "2021-03-10", "Rating10": "8", "Rewatch": "false"},
    ]


@pytest.mark.asyncio
async def test_generate_export_raw_returns_records_without_writing(tmp_path: Path) -> None:
    records = await generate_export("alice", raw=True, source=AliceSource(), out_dir=tmp_path)

    assert [r.watched_date for r in records] == ["2020-01-05", "2019-06-01", "2021-03-10"]
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_ratings_404_propagates_and_leaves_no_file(tmp_path: Path) -> None:
    with pytest.raises(UpstreamError) as excinfo:
        await generate_export("alice", source=AliceSource(ratings_status=404), out_dir=tmp_path)

    assert excinfo.value.status == 404
    assert list(tmp_path.iterdir()) == []


def test_export_base_name_is_unique_and_filename_safe() -> None:
    a = export_base_name("al/ice", now=0)
    b = export_base_name("al/ice", now=0)

    assert a.startswith("al-ice_19700101000000_")
    assert a != b
