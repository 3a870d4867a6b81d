from __future__ import annotations

from dataclasses import dataclass


@dataclass
class MovieRecord:
    """One Letterboxd import row, i.e. one viewing of a film."""

    imdb_id: str | None
    tmdb_id: str | None
    title: str
    year: int | None
    watched_date: str = ""
    rating10: int | None = None
    rewatch: bool = False


def date_part(timestamp: str | None) -> str:
    # Trakt timestamps look like 2020-01-05T19:21:00.000Z.
    if not timestamp:
        return ""
    return timestamp.split("T", 1)[0]
