# Vault - Audit Logging
#
# Append-only audit log for every vault lifecycle event and record mutation.
# Events carry ids, collection names and counts only: PINs, keys, amounts,
# notes and category names never reach the log.

import logging
import os
import socket
import sys
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog


class EventType(str, Enum):
    """Types of events written to the audit log."""
    # Vault lifecycle
    VAULT_REGISTERED = "vault.registered"
    VAULT_UNLOCKED = "vault.unlocked"
    VAULT_LOCKED = "vault.locked"
    VAULT_UNLOCK_FAILED = "vault.unlock.failed"
    VAULT_PIN_CHANGED = "vault.pin.changed"
    VAULT_RESET = "vault.reset"
    VAULT_ERROR = "vault.error"

    # Record mutations
    RECORD_ADDED = "vault.record.added"
    RECORD_UPDATED = "vault.record.updated"
    RECORD_DELETED = "vault.record.deleted"

    # Backup files (plaintext, user initiated)
    DATA_EXPORTED = "vault.data.exported"
    DATA_IMPORTED = "vault.data.imported"

    # Local API access
    API_TOKEN_ISSUED = "api.token.issued"
    API_AUTH_FAILED = "api.auth.failed"

    # System Events
    SYSTEM_START = "system.start"
    SYSTEM_STOP = "system.stop"


class EventSeverity(str, Enum):
    """
    Severity levels for audit events.

    - INFO: normal activity
    - INVESTIGATE: something unusual (e.g. a wrong PIN)
    - ALERT: a guard kicked in (unlock back-off)
    - CRITICAL: data may be lost or the vault cannot operate
    """
    INFO = "info"
    INVESTIGATE = "investigate"
    ALERT = "alert"
    CRITICAL = "critical"


class AuditLogger:
    """
    Append-only structured audit logger.

    Features:
    - Structured JSON lines via structlog
    - Automatic timestamp and event ID
    - One log file per day inside ``log_dir``
    """

    def __init__(self, log_dir: Optional[Path] = None):
        """
        Initialize audit logger.

        Args:
            log_dir: Directory for audit logs (default: ./audit_logs)
        """
        self.log_dir = Path(log_dir) if log_dir else Path("./audit_logs")
        self.log_dir.mkdir(parents=True, exist_ok=True)

        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer()
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        self.log_file = self._setup_file_handler()

        self.logger = structlog.get_logger("pinvault.audit")

    def _setup_file_handler(self) -> Path:
        """Attach a handler writing to today's log file."""
        today = datetime.now().strftime("%Y-%m-%d")
        log_file = self.log_dir / f"audit_{today}.log"

        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter('%(message)s'))

        audit_logger = logging.getLogger("pinvault.audit")
        for handler in list(audit_logger.handlers):
            audit_logger.removeHandler(handler)
            handler.close()
        audit_logger.addHandler(file_handler)
        audit_logger.setLevel(logging.INFO)

        return log_file

    def log_event(
        self,
        event_type: EventType,
        severity: EventSeverity,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        user_context: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Log an audit event (append-only).

        Args:
            event_type: Type of event (from EventType enum)
            severity: Severity level (from EventSeverity enum)
            message: Human-readable event description
            details: Additional event details (never secrets)
            user_context: Caller context (defaults to OS user/host)

        Returns:
            str: Event ID (UUID) for reference
        """
        event_id = str(uuid4())

        event_data = {
            "event_id": event_id,
            "event_type": event_type.value,
            "severity": severity.value,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "details": details or {},
            "user_context": user_context or self._get_default_user_context(),
        }

        self.logger.info("vault_event", **event_data)

        return event_id

    def _get_default_user_context(self) -> Dict[str, Any]:
        return {
            "os_user": os.getenv("USERNAME") or os.getenv("USER"),
            "hostname": socket.gethostname(),
            "platform": sys.platform,
        }


# Global logger instance
_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get global audit logger (singleton pattern)."""
    global _audit_logger
    if _audit_logger is None:
        from ..config import load_config

        _audit_logger = AuditLogger(log_dir=load_config().audit_dir)
    return _audit_logger


def set_audit_logger(logger: Optional[AuditLogger]) -> None:
    """Replace the global audit logger (used by tests and the CLI)."""
    global _audit_logger
    _audit_logger = logger


def log_security_event(
    event_type: EventType,
    severity: EventSeverity,
    message: str,
    **kwargs
) -> str:
    """
    Convenience function for logging audit events.

    Usage:
        log_security_event(
            EventType.VAULT_ERROR,
            EventSeverity.CRITICAL,
            "Credential record unreadable",
            details={"record": "settings"}
        )
    """
    return get_audit_logger().log_event(event_type, severity, message, **kwargs)
