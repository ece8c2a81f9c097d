"""structlog setup for the API process and the sweep CLI.

Application modules log through ``logging.getLogger(__name__)``; the stdlib
records are rendered by structlog's ``ProcessorFormatter`` so they pick up the
request or sweep context bound in contextvars.
"""

import logging
import sys

import structlog

SERVICE_NAME = "jobdock"

# Libraries that log every request or statement at INFO.
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "aiosqlite")


def _add_service(logger, method_name, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(log_level: str = "info", json_output: bool = False) -> None:
    """Route stdlib and structlog output through one handler on stdout.

    JSON lines when ``json_output`` is set, otherwise a coloured console view.
    """
    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_service,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_request_context(trace_id: str, tenant_id: str | None = None, user_id: str | None = None) -> None:
    """Attach trace, tenant and user ids to every log line of the current request."""
    context = {"trace_id": trace_id, "tenant_id": tenant_id, "user_id": user_id}
    structlog.contextvars.bind_contextvars(**{k: v for k, v in context.items() if v})


def bind_sweep_context(run_id: str, dry_run: bool) -> None:
    structlog.contextvars.bind_contextvars(sweep_run_id=run_id, dry_run=dry_run)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
