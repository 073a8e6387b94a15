"""
Structured logging for Amber Drive admin.

Three channels sit on top of structlog:
- request: one line per HTTP request, with a request id bound for the
  duration of the request so every service line carries it
- audit: logins, status changes and deletions (quotes have no history table)
- service.<name>: timed business operations
"""

import logging
import sys
import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from structlog.types import Processor

from amber_drive.config.settings import settings
from amber_drive.exceptions import AmberDriveError


def setup_logging() -> None:
    """Configure structlog and the stdlib root logger from settings."""
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.log_format == "json":
        renderer: list[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]

    structlog.configure(
        processors=shared_processors + renderer,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class RequestLogger:
    """HTTP access log with a per-request id."""

    def __init__(self):
        self.logger = get_logger("request")

    def begin(self, method: str, path: str, client_ip: str | None) -> tuple[str, float]:
        """Bind request context and return (request_id, start time)."""
        request_id = uuid.uuid4().hex[:12]
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, method=method, path=path)
        self.logger.debug("request_received", client_ip=client_ip)
        return request_id, time.perf_counter()

    def end(self, status_code: int, started: float) -> None:
        log = self.logger.info if status_code < 400 else self.logger.warning
        log("request_completed", status_code=status_code, duration_ms=_elapsed_ms(started))
        structlog.contextvars.clear_contextvars()


class AuditLogger:
    """Audit trail for back-office changes."""

    def __init__(self):
        self.logger = get_logger("audit")

    def record(
        self,
        action: str,
        resource: str,
        resource_id: int | str | None,
        actor_id: int | None,
        **changes: Any,
    ) -> None:
        """
        Record an auditable change.

        Args:
            action: create, delete, status_change, ...
            resource: car, quote, admin_user
            resource_id: ID of the affected row
            actor_id: Acting admin, None for CLI operations
            changes: Before/after values worth keeping
        """
        self.logger.info(
            "audit_event",
            action=action,
            resource=resource,
            resource_id=resource_id,
            actor_id=actor_id,
            **changes,
        )

    def login(
        self,
        username: str,
        success: bool,
        ip_address: str | None = None,
        reason: str | None = None,
    ) -> None:
        log = self.logger.info if success else self.logger.warning
        log("login_attempt", username=username, success=success, ip_address=ip_address, reason=reason)


class ServiceLogger:
    """
    Operation logging for a service.

    Usage:
        with self.logger.operation("create_quote", user_id=1, car_count=2) as op:
            ...
            op["quote_id"] = quote.id
    """

    def __init__(self, service_name: str):
        self.logger = get_logger(f"service.{service_name}")
        self.service_name = service_name

    @contextmanager
    def operation(
        self,
        name: str,
        /,
        user_id: int | None = None,
        **fields: Any,
    ) -> Iterator[dict[str, Any]]:
        """
        Time an operation and log its start and outcome.

        Yields a dict; keys added to it are logged with the completion line.
        """
        result: dict[str, Any] = {}
        started = time.perf_counter()
        self.logger.info(f"{name}_started", service=self.service_name, user_id=user_id, **fields)
        try:
            yield result
        except Exception as e:
            # Domain errors are expected outcomes, anything else is a fault
            log = self.logger.warning if isinstance(e, AmberDriveError) else self.logger.error
            log(
                f"{name}_failed",
                service=self.service_name,
                user_id=user_id,
                duration_ms=_elapsed_ms(started),
                error_type=type(e).__name__,
                error_message=str(e),
                **fields,
            )
            raise
        self.logger.info(
            f"{name}_completed",
            service=self.service_name,
            duration_ms=_elapsed_ms(started),
            **{"user_id": user_id, **fields, **result},
        )

    def warning(self, event: str, **fields: Any) -> None:
        self.logger.warning(event, service=self.service_name, **fields)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


# Global logger instances
request_logger = RequestLogger()
audit_logger = AuditLogger()
