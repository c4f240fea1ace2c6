"""
Structured logging for the CancerCare API.

Every entry carries an ISO timestamp, level, logger name and the bound
request context. Patient codes and credentials never reach the output:
they are masked by a processor that runs before rendering, for both
structlog and plain stdlib records (uvicorn, python-arango).
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from cancercare.config.config import Settings, get_settings

# Keys masked wherever they appear in an event
SENSITIVE_KEYS = frozenset({"patient_code", "arango_password", "password"})
REDACTED = "***REDACTED***"


def redact_sensitive(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Mask identifying fields, including inside a nested ``config`` dict."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    config = event_dict.get("config")
    if isinstance(config, dict):
        event_dict["config"] = {
            k: REDACTED if k in SENSITIVE_KEYS and v else v for k, v in config.items()
        }
    return event_dict


def configure_logging(settings: Settings | None = None) -> None:
    """
    Route structlog and stdlib logging through one formatter.

    ``log_format="json"`` (always used in production) emits one JSON object
    per line for aggregation; ``console`` renders key/value output for local
    work.
    """
    settings = settings or get_settings()

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_sensitive,
    ]

    renderer: Processor
    if settings.log_format == "json" or settings.is_production:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain)
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(settings.log_level)

    # Per-request access lines duplicate the middleware's "Request completed"
    for name in ("uvicorn.access", "httpx", "urllib3", "arango"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger bound to ``name`` (normally the calling module's ``__name__``)."""
    return structlog.get_logger(name)


def log_request_context(request_id: str, method: str, path: str, **extra: Any) -> None:
    """
    Replace the per-request log context.

    Called once per request by the HTTP middleware; everything logged while
    serving the request carries these fields.
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        http_method=method,
        http_path=path,
        **extra,
    )
