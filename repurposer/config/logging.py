"""structlog setup shared by the API process and tests."""

import logging
import sys

import structlog

# Long text fields (source content, generated posts) are clipped in log lines
MAX_LOGGED_TEXT = 200

_QUIET_LOGGERS = ("httpx", "openai", "anthropic")


def clip_long_text(
    _logger: object, _method: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    for key, value in event_dict.items():
        if key != "event" and isinstance(value, str) and len(value) > MAX_LOGGED_TEXT:
            event_dict[key] = f"{value[:MAX_LOGGED_TEXT]}... ({len(value)} chars)"
    return event_dict


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Route structlog through stdlib logging, JSON when not on a terminal."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        clip_long_text,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    use_json = json_output or not sys.stderr.isatty()
    processors.append(
        structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    # Provider SDKs log every HTTP call at INFO
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
