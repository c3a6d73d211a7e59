"""
Structured Logging and Activity Trail

DESIGN DECISION: Every layer logs through structlog.
This provides:
1. Machine-readable logs of storage failures and sync decisions
2. A trail of every store mutation (who changed what)
3. One configuration point for level and rendering

The activity logger:
- Listens to store mutation events
- Never raises (logging must not break a mutation)
"""

import logging
from typing import Callable, Optional

import structlog

from expense_manager.config import AppSettings


_fallback_logger = logging.getLogger(__name__)


_SHARED_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]


def _configure_structlog(json_output: bool = True) -> None:
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[*_SHARED_PROCESSORS, renderer],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        # Loggers are resolved on every use so configure_logging reaches
        # module-level loggers that already logged.
        cache_logger_on_first_use=False,
    )


# Configure structlog for local logging
_configure_structlog()


def configure_logging(settings: Optional[AppSettings] = None) -> None:
    """
    Apply level and rendering from settings.

    Takes effect for every logger, including ones already used.
    """
    settings = settings or AppSettings()
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, settings.log_level),
    )
    logging.getLogger().setLevel(settings.log_level)
    _configure_structlog(json_output=settings.log_json)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class ActivityLogger:
    """
    Logs every store mutation as a structured `store_mutation` event.

    Attach it to stores; it keeps the unsubscribe handles so it can
    be detached again.
    """

    def __init__(self, logger: Optional[structlog.stdlib.BoundLogger] = None):
        self._logger = logger or get_logger("expense_manager.activity")
        self._detachers: list[Callable[[], None]] = []

    def attach(self, store) -> None:
        """Start logging mutations of an entity store."""
        self._detachers.append(store.on_mutation(self.log_mutation))

    def detach_all(self) -> None:
        for detach in self._detachers:
            detach()
        self._detachers.clear()

    def log_mutation(self, event) -> bool:
        """
        Log one mutation event.

        Returns:
            True if logged, False if logging failed (the failure is
            reported to the stdlib logger, never raised)
        """
        entity = event.entity
        try:
            self._logger.info(
                "store_mutation",
                collection=event.collection,
                action=event.action,
                entity_id=event.entity_id,
                user_id=getattr(entity, "user_id", None) if entity is not None else None,
            )
            return True
        except Exception as e:
            # Log failure but don't raise
            _fallback_logger.error(
                "activity_log_failed: %s (collection=%s, entity_id=%s)",
                e,
                event.collection,
                event.entity_id,
            )
            return False
