from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Protocol

import structlog

from trakt_letterboxd.core.records import MovieRecord, date_part
from trakt_letterboxd.core.trakt_api import HistoryEntry, MovieRating, WatchedMovie

log = structlog.get_logger(__name__)


class WatchSource(Protocol):
    async def fetch_watched_movies(self, user_id: str) -> list[WatchedMovie]: ...

    async def fetch_ratings(self, user_id: str) -> list[MovieRating]: ...

    async def fetch_history(
        self,
        user_id: str,
        trakt_id: int | str,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[HistoryEntry]: ...


def index_watched(
    watched: list[WatchedMovie],
) -> tuple[dict[int, MovieRecord], set[int]]:
    """Build the per-export ``trakt id -> record`` map.

    Films played once get their date straight from the watched list. Films
    played more than once are returned in the second value and need a history
    lookup to enumerate individual viewings.
    """

    by_id: dict[int, MovieRecord] = {}
    multi_watch: set[int] = set()
    for entry in watched:
        single = entry.plays == 1
        by_id[entry.trakt_id] = MovieRecord(
            imdb_id=entry.imdb_id,
            tmdb_id=entry.tmdb_id,
            title=entry.title,
            year=entry.year,
            watched_date=date_part(entry.last_watched_at) if single else "",
        )
        if not single:
            multi_watch.add(entry.trakt_id)
    return by_id, multi_watch


def attach_ratings(by_id: dict[int, MovieRecord], ratings: list[MovieRating]) -> None:
    for entry in ratings:
        record = by_id.get(entry.trakt_id)
        if record is not None:
            record.rating10 = entry.rating


def expand_history(base: MovieRecord, history: list[HistoryEntry]) -> list[MovieRecord]:
    """One row per viewing; only the last (most recent) one is not a rewatch."""

    last = len(history) - 1
    return [
        replace(base, watched_date=date_part(entry.watched_at), rewatch=i < last)
        for i, entry in enumerate(history)
    ]


async def build_movie_records(
    source: WatchSource,
    user_id: str,
    start_date: str | None = None,
    end_date: str | None = None,
) -> list[MovieRecord]:
    if start_date and end_date and start_date > end_date:
        # Trakt answers this with empty history pages rather than an error.
        log.warning("inverted_date_range", user=user_id, start_date=start_date, end_date=end_date)

    watched = await source.fetch_watched_movies(user_id)
    by_id, multi_watch = index_watched(watched)

    ratings = await source.fetch_ratings(user_id)
    attach_ratings(by_id, ratings)

    log.info(
        "watched_list_indexed",
        user=user_id,
        movies=len(by_id),
        multi_watch=len(multi_watch),
        ratings=len(ratings),
    )

    multi_ids = [trakt_id for trakt_id in by_id if trakt_id in multi_watch]
    histories = await asyncio.gather(
        *(source.fetch_history(user_id, trakt_id, start_date, end_date) for trakt_id in multi_ids)
    )
    history_by_id = dict(zip(multi_ids, histories))

    records: list[MovieRecord] = []
    for trakt_id, base in by_id.items():
        if trakt_id in history_by_id:
            records.extend(expand_history(base, history_by_id[trakt_id]))
        else:
            records.append(base)

    log.info("records_built", user=user_id, records=len(records))
    return records
