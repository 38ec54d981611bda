"""structlog setup for the API process, the indexing worker and the CLI.

One processor chain serves both structlog loggers and the stdlib loggers
of httpx, uvicorn and aiosqlite.  Development gets the coloured console
renderer; ``APP_ENV=production`` (or ``json_output=True``) gets one JSON
object per line.

Indexing jobs run outside any request, so :func:`job_context` binds the
job id, kind and workspace into contextvars for everything logged while
the job runs.  Credential-looking keys are masked before rendering.
"""

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "aiosqlite")

_SECRET_KEYS = frozenset({"api_key", "openai_api_key", "authorization", "token"})


def _mask_secrets(
    _logger: Any, _method: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    for key in _SECRET_KEYS.intersection(event_dict):
        value = str(event_dict[key] or "")
        event_dict[key] = f"{value[:3]}***" if len(value) > 8 else "***"
    return event_dict


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        _mask_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    app_env: str | None = None,
) -> structlog.BoundLogger:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR.
        json_output: Force the JSON renderer.
        app_env: Deployment environment; read from ``APP_ENV`` when omitted.

    Returns:
        A configured structlog BoundLogger.
    """
    level = log_level.upper()
    env = app_env if app_env is not None else os.environ.get("APP_ENV", "development")
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_output or env == "production"
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *shared,
                renderer,
            ],
        )
    )
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # per-request transport chatter is only useful when debugging
    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.DEBUG if level == "DEBUG" else logging.WARNING)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger bound with *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)


@contextmanager
def job_context(job_id: str, kind: str, workspace_id: str) -> Iterator[None]:
    """Bind indexing job identifiers to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(
        job_id=job_id, job_kind=kind, workspace_id=workspace_id
    ):
        yield
