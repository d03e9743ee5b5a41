from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s - %(message)s'
_HANDLER_MARKER = '_warehouse_ledger_handler'


def setup_logging(settings) -> logging.Logger:
    """Configure the root logger once: console output plus an optional rotating file."""
    root = logging.getLogger()
    root.setLevel(settings.log_level.upper())
    # avoid duplicate handlers on reload
    if any(getattr(h, _HANDLER_MARKER, False) for h in root.handlers):
        return root

    fmt = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        log_path = Path(settings.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3, encoding='utf-8')
        )

    for handler in handlers:
        handler.setFormatter(fmt)
        setattr(handler, _HANDLER_MARKER, True)
        root.addHandler(handler)

    # also route uvicorn loggers through the same handlers
    for name in ('uvicorn', 'uvicorn.error', 'uvicorn.access'):
        lg = logging.getLogger(name)
        lg.handlers = list(handlers)
        lg.propagate = False

    return root
