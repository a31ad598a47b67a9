import logging
from typing import Any

import structlog

from protracker.utils import mask_code

# pymongo emits per-command and per-heartbeat records; change streams make this constant
NOISY_LOGGERS = ("pymongo", "pymongo.topology", "pymongo.connection", "pymongo.command", "pymongo.serverSelection")


def mask_access_code(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Never write a full access code, whoever passed it in."""
    code = event_dict.get("access_code")
    if isinstance(code, str):
        event_dict["access_code"] = mask_code(code)
    return event_dict


def setup_logging(debug: bool) -> None:
    """Route structlog through stdlib logging: console output in debug, JSON lines otherwise."""
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format="%(message)s")
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    renderer: structlog.types.Processor = (
        structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer(ensure_ascii=False)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            mask_access_code,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
