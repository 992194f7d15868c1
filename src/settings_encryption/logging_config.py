"""structlog + stdlib logging setup for hosts and the diagnostics CLI.

Both ``structlog.get_logger()`` and ``logging.getLogger(__name__)`` calls
render through the same formatter, either as JSON lines or coloured console
output. A redaction step masks any event field that could carry a secret.
"""

import logging
import sys

import structlog
from structlog.typing import EventDict, WrappedLogger

SENSITIVE_FIELDS = frozenset(
    {"plaintext", "value", "key", "secret", "encryption_key", "override_value"}
)
REDACTED = "***"


def redact_secrets(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask values of fields listed in :data:`SENSITIVE_FIELDS`."""
    for field in SENSITIVE_FIELDS.intersection(event_dict):
        event_dict[field] = REDACTED
    return event_dict


def configure_logging(json_output: bool = True, log_level: str = "INFO") -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        json_output: Render JSON lines when ``True``, otherwise use the
            console renderer.
        log_level: Root log level name, e.g. ``"DEBUG"`` or ``"WARNING"``.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    # stderr keeps CLI stdout clean for piping tokens.
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper()))
