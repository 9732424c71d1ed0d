"""Structured logging for reconciliation and migration runs.

Every reconcile pass and every migration run executes inside a
``run_scope``: events emitted while it is open (including from worker
threads that copied the context) carry ``run_id`` and ``run_kind``. A scope
opened inside another joins the outer run instead of starting a new one, so
a pipeline migration and the per-platform applies it drives share one id.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from tokenplane.config.models import LoggingConfig, LogOutputConfig

RUN_ID_KEY = "run_id"
RUN_KIND_KEY = "run_kind"


def current_run_id() -> str | None:
    return structlog.contextvars.get_contextvars().get(RUN_ID_KEY)


@contextmanager
def run_scope(kind: str, run_id: str | None = None) -> Iterator[str]:
    """Bind a run id for the duration of the block and yield it.

    Args:
        kind: What is running, e.g. ``"reconcile"`` or ``"migration"``.
        run_id: Explicit id; by default the enclosing run's id, else a new one.
    """
    outer = current_run_id()
    if outer is not None and run_id in (None, outer):
        yield outer
        return
    rid = run_id or uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(**{RUN_ID_KEY: rid, RUN_KIND_KEY: kind}):
        yield rid


def _handler_for(output: LogOutputConfig, fallback_level: str) -> logging.Handler:
    handler: logging.Handler
    if output.destination == "stderr":
        handler = logging.StreamHandler(sys.stderr)
    elif output.destination == "stdout":
        handler = logging.StreamHandler(sys.stdout)
    else:
        path = Path(output.destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")

    renderer: structlog.types.Processor
    if output.format == "json":
        renderer = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        stream = getattr(handler, "stream", None)
        renderer = structlog.dev.ConsoleRenderer(colors=bool(stream and stream.isatty()))
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=_PRE_CHAIN,
        )
    )
    handler.setLevel(output.level or fallback_level)
    return handler


_PRE_CHAIN: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
]


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Route structlog events through stdlib handlers, one per configured output.

    Safe to call repeatedly; each call replaces the previous handlers.
    """
    from tokenplane.config.models import LoggingConfig

    config = config or LoggingConfig()

    structlog.configure(
        processors=[
            *_PRE_CHAIN,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(config.level)
    for output in config.outputs:
        root.addHandler(_handler_for(output, config.level))
