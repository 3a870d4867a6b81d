from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

TRAKT_API_BASE = "https://api.trakt.tv"

log = structlog.get_logger(__name__)


class TraktExportError(RuntimeError):
    pass


class ConfigurationError(TraktExportError):
    pass


class UpstreamError(TraktExportError):
    """Non-2xx response from the Trakt API."""

    def __init__(self, status: int, status_text: str) -> None:
        super().__init__(f"Trakt responded with {status}: {status_text}")
        self.status = status
        self.status_text = status_text


@dataclass(frozen=True)
class WatchedMovie:
    trakt_id: int
    imdb_id: str | None
    tmdb_id: str | None
    title: str
    year: int | None
    plays: int
    last_watched_at: str | None


@dataclass(frozen=True)
class MovieRating:
    trakt_id: int
    rating: int


@dataclass(frozen=True)
class HistoryEntry:
    watched_at: str


def _default_client_id() -> str:
    client_id = os.environ.get("TRAKT_LETTERBOXD_CLIENT_ID", "").strip()
    if not client_id:
        raise ConfigurationError("TRAKT_LETTERBOXD_CLIENT_ID is not set")
    return client_id


def _default_api_base() -> str:
    return os.environ.get("TRAKT_LETTERBOXD_API_BASE", TRAKT_API_BASE).rstrip("/")


def _external_id(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def history_params(start_date: str | None, end_date: str | None) -> dict[str, str]:
    """Query constraints for the history endpoint.

    Both bounds are inclusive. Trakt returns an empty page when start is after
    end; that is passed through unchanged.
    """

    params: dict[str, str] = {}
    if start_date:
        params["start_at"] = start_date
    if end_date:
        params["end_at"] = end_date
    return params


def parse_watched_movies(payload: list[dict[str, Any]]) -> list[WatchedMovie]:
    out: list[WatchedMovie] = []
    for entry in payload:
        movie = entry.get("movie") or {}
        ids = movie.get("ids") or {}
        out.append(
            WatchedMovie(
                trakt_id=int(ids["trakt"]),
                imdb_id=_external_id(ids.get("imdb")),
                tmdb_id=_external_id(ids.get("tmdb")),
                title=movie.get("title") or "",
                year=movie.get("year"),
                plays=int(entry.get("plays") or 0),
                last_watched_at=entry.get("last_watched_at"),
            )
        )
    return out


def parse_ratings(payload: list[dict[str, Any]]) -> list[MovieRating]:
    return [
        MovieRating(trakt_id=int(entry["movie"]["ids"]["trakt"]), rating=int(entry["rating"]))
        for entry in payload
    ]


def parse_history(payload: list[dict[str, Any]]) -> list[HistoryEntry]:
    return [HistoryEntry(watched_at=entry["watched_at"]) for entry in payload]


class TraktClient:
    """Thin async wrapper over the three Trakt user endpoints we read.

    Pass an existing ``httpx.AsyncClient`` to share a connection pool (or to
    inject a mock transport in tests); otherwise one is created and owned by
    this object.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        client_id: str | None = None,
        base_url: str | None = None,
        timeout_s: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                base_url=base_url or _default_api_base(),
                headers={
                    "Content-Type": "application/json",
                    "trakt-api-version": "2",
                    "trakt-api-key": client_id or _default_client_id(),
                },
                timeout=timeout_s,
                transport=transport,
            )
        self._client = client

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> TraktClient:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

    async def _get_json(self, path: str, params: dict[str, str] | None = None) -> Any:
        resp = await self._client.get(path, params=params or None)
        if not resp.is_success:
            log.warning("trakt_request_failed", path=path, status=resp.status_code)
            raise UpstreamError(resp.status_code, resp.reason_phrase)
        return resp.json()

    async def fetch_watched_movies(self, user_id: str) -> list[WatchedMovie]:
        payload = await self._get_json(f"/users/{user_id}/watched/movies")
        return parse_watched_movies(payload)

    async def fetch_ratings(self, user_id: str) -> list[MovieRating]:
        payload = await self._get_json(f"/users/{user_id}/ratings/movies")
        return parse_ratings(payload)

    async def fetch_history(
        self,
        user_id: str,
        trakt_id: int | str,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[HistoryEntry]:
        payload = await self._get_json(
            f"/users/{user_id}/history/movies/{trakt_id}",
            history_params(start_date, end_date),
        )
        return parse_history(payload)
