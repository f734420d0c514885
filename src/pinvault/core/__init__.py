# Core Module - Shared Utilities
#
# - Audit logging
# - SQLite connection helper
# - Unencrypted user preferences (theme)

from .audit_log import (
    AuditLogger,
    EventSeverity,
    EventType,
    get_audit_logger,
    log_security_event,
    set_audit_logger,
)
from .user_preferences import (
    DEFAULT_THEME,
    THEMES,
    UserPreferences,
)

__all__ = [
    # Audit Logging
    "AuditLogger",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
    "set_audit_logger",
    "log_security_event",
    # Preferences
    "UserPreferences",
    "DEFAULT_THEME",
    "THEMES",
]
