"""structlog over stdlib logging: one log file plus stderr.

Both handlers share the same processor chain; the file gets plain
key=value lines, the console gets structlog's dev renderer.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog

_HANDLER_TAG = "_httpmon_handler"


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def setup_logging(log_file: Optional[str] = None, level: str = "INFO", console: bool = True) -> Optional[str]:
    """
    Configure logging for the process. Returns the log file path actually in
    use, or None when the file could not be opened (console only).
    Safe to call more than once; earlier handlers are replaced.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    for h in list(root.handlers):
        if getattr(h, _HANDLER_TAG, False):
            root.removeHandler(h)
            h.close()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handlers: list[logging.Handler] = []
    if console:
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.dev.ConsoleRenderer(colors=False),
            ],
        ))
        handlers.append(stream)

    used_file: Optional[str] = None
    open_error: Optional[str] = None
    if log_file:
        try:
            fh = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        except OSError as e:
            open_error = str(e)
        else:
            fh.setFormatter(structlog.stdlib.ProcessorFormatter(
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "event"]),
                ],
            ))
            handlers.append(fh)
            used_file = log_file

    for h in handlers:
        setattr(h, _HANDLER_TAG, True)
        root.addHandler(h)

    # aiohttp.access is chatty at INFO for every scrape
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

    if open_error is not None:
        structlog.get_logger("logging").warning("log_file_open_failed", path=log_file, err=open_error)
    return used_file
