"""Centralized logging configuration for metascope."""

import datetime as dt
import logging
import sys
from dataclasses import dataclass
from typing import Callable, List, Optional


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure logging for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to INFO if not specified.
    """
    log_level = getattr(logging, level.upper()) if level else logging.INFO

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Suppress overly verbose loggers
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.getLogger("metascope").setLevel(log_level)
    logging.getLogger("metascope.scraper").setLevel(logging.INFO)
    logging.getLogger("metascope.services").setLevel(logging.INFO)

    logger = logging.getLogger("metascope.logging_config")
    logger.info(f"Logging initialized at level: {logging.getLevelName(log_level)}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with consistent configuration.

    Args:
        name: The logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


# ────────────────────────────── Événements ──────────────────────────────────
# Niveaux "métier" émis vers l'UI ; SUCCESS n'existe pas dans logging.
_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "SUCCESS": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


@dataclass(frozen=True)
class LogEvent:
    """Structured freshness event (fetch start/success/failure, cache hit/miss)."""
    level: str
    message: str
    timestamp: str

    def to_dict(self) -> dict:
        return {"level": self.level, "message": self.message, "timestamp": self.timestamp}


Listener = Callable[[LogEvent], None]


class EventLog:
    """
    Emits LogEvents to the stdlib logger and to subscribed listeners.

    Delivery (websocket, UI panel, ...) belongs to whoever subscribes; a
    listener that raises is logged and does not stop the others.
    """

    def __init__(self, name: str = "metascope.events", history_size: int = 200):
        self._logger = logging.getLogger(name)
        self._listeners: List[Listener] = []
        self._history: List[LogEvent] = []
        self._history_size = history_size

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def history(self) -> List[LogEvent]:
        return list(self._history)

    def emit(self, level: str, message: str) -> LogEvent:
        level = level.upper()
        event = LogEvent(
            level=level,
            message=message,
            timestamp=dt.datetime.now().strftime("%H:%M:%S"),
        )
        self._logger.log(_LEVELS.get(level, logging.INFO), "[%s] %s", level, message)

        self._history.append(event)
        if len(self._history) > self._history_size:
            del self._history[0]

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                self._logger.warning(f"Event listener failed: {e}")
        return event

    def info(self, message: str) -> LogEvent:
        return self.emit("INFO", message)

    def success(self, message: str) -> LogEvent:
        return self.emit("SUCCESS", message)

    def error(self, message: str) -> LogEvent:
        return self.emit("ERROR", message)
