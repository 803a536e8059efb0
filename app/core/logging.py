# app/core/logging.py
"""
Logging estruturado via structlog, renderizado pelo handler do stdlib para
que uvicorn/alembic e o app saiam no mesmo formato.
"""
import logging
import sys
from typing import Any, List, Optional

import structlog

from app.core.config import settings

def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    lvl = (level or settings.LOG_LEVEL or "INFO").upper()
    shared_processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: Any
    if (fmt or settings.LOG_FORMAT) == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, lvl, logging.INFO))

    # uvicorn mantém os handlers dele; só alinhamos o nível
    logging.getLogger("uvicorn").setLevel(root.level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
