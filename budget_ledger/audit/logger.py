"""
Audit Logger

Every state-changing ledger operation is logged. This provides:
1. Traceability of money movements
2. Debugging capability when a balance looks wrong
3. A visible record of rejected operations

The audit logger:
- Writes structured JSON records through structlog
- Never raises into the caller (a logging failure must not undo a commit)
- Supports correlation IDs to trace the events of one operation
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from budget_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO", debug: bool = False) -> None:
    """
    Route structlog output through the stdlib root logger.

    Debug mode lowers the level to DEBUG whatever level is configured.
    """
    resolved = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s")
    logging.getLogger().setLevel(resolved)


class AuditLogger:
    """
    Central audit logging service.

    Events are built with AuditEventBuilder and written as one
    structured "audit_event" record each.
    """

    def __init__(self, logger_name: str = "budget_ledger.audit"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the record could not be written.
        """
        try:
            log_dict = event.to_log_dict()
            if event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            logging.getLogger(__name__).error("audit logging failed: %s", e)
            return False
        return True

    def log_rejected(
        self,
        operation: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a validation, not-found or conflict rejection."""
        self.log(
            AuditEventBuilder.operation_rejected(
                operation=operation,
                error_type=type(error).__name__,
                error_message=str(error),
                correlation_id=correlation_id or create_correlation_id(),
            )
        )

    def log_error(
        self,
        operation: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an unexpected storage or system failure."""
        self.log(
            AuditEventBuilder.system_error(
                operation=operation,
                error_type=type(error).__name__,
                error_message=str(error),
                correlation_id=correlation_id or create_correlation_id(),
            )
        )


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a ledger operation and pass it to every event.
    """
    return uuid4()
