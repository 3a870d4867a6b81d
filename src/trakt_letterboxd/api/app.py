from __future__ import annotations

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trakt_letterboxd.api.routes import router
from trakt_letterboxd.core.log_config import setup_logging


def _parse_csv_env(name: str) -> list[str]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return []

    # Support both comma-separated values and newline-separated values (common in PaaS).
    parts = [p.strip() for p in raw.replace("\n", ",").split(",")]
    return [p for p in parts if p]


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title="Trakt to Letterboxd Exporter", version="0.1.0")

    # Opt-in, e.g. TRAKT_LETTERBOXD_CORS_ORIGINS=https://your.site
    cors_origins = _parse_csv_env("TRAKT_LETTERBOXD_CORS_ORIGINS")
    if cors_origins:
        allow_all = "*" in cors_origins
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"] if allow_all else cors_origins,
            allow_credentials=False,
            allow_methods=["*"] if allow_all else ["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(_request, _exc: Exception):
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.include_router(router)
    return app


app = create_app()
