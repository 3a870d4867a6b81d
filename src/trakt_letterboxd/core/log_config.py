from __future__ import annotations

import logging
import os

import structlog


def setup_logging(*, json_logs: bool | None = None, level: int = logging.INFO) -> None:
    if json_logs is None:
        json_logs = os.environ.get("TRAKT_LETTERBOXD_LOG_JSON", "") == "1"

    pre_chain = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_logs:
        processors = pre_chain + [structlog.processors.JSONRenderer()]
    else:
        processors = pre_chain + [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", level=level)
