# API Security - Session token for the local HTTP API
#
# The UI holds the plaintext view of the vault once it is unlocked, so the
# HTTP surface in front of it is gated by a per-process token sent in the
# X-Session-Token header. The token is either supplied through
# PINVAULT_SESSION_TOKEN (for a UI launched alongside the backend) or
# generated at start-up and printed by the CLI.
#
# Only a short fingerprint of the token ever reaches the audit log.

import hashlib
import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from ..core import EventSeverity, EventType, get_audit_logger

# Shortest token accepted from configuration (token_urlsafe(32) gives 43)
MIN_TOKEN_LENGTH = 32

_SESSION_TOKEN: Optional[str] = None


def token_fingerprint(token: str) -> str:
    """First 12 hex chars of SHA-256(token), safe to log and display."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]


def initialize_session_token(configured: Optional[str] = None) -> str:
    """
    Install the session token for this backend instance.

    Args:
        configured: Token from VaultConfig.session_token. When None a fresh
            256-bit token is generated.

    Returns:
        The active token (handed to the UI)

    Raises:
        ValueError: configured token is shorter than MIN_TOKEN_LENGTH
    """
    global _SESSION_TOKEN
    if configured is not None:
        if len(configured) < MIN_TOKEN_LENGTH:
            raise ValueError(
                f"PINVAULT_SESSION_TOKEN must be at least {MIN_TOKEN_LENGTH} characters"
            )
        token, source = configured, "config"
    else:
        token, source = secrets.token_urlsafe(32), "generated"

    _SESSION_TOKEN = token
    get_audit_logger().log_event(
        event_type=EventType.API_TOKEN_ISSUED,
        severity=EventSeverity.INFO,
        message=f"API session token installed ({source})",
        details={"source": source, "fingerprint": token_fingerprint(token)}
    )
    return token


def get_session_token() -> str:
    """
    Get the current session token.

    Raises:
        RuntimeError: If session token hasn't been initialized
    """
    if _SESSION_TOKEN is None:
        raise RuntimeError("Session token not initialized. Call initialize_session_token() first.")
    return _SESSION_TOKEN


def _reject(reason: str, detail: str) -> HTTPException:
    get_audit_logger().log_event(
        event_type=EventType.API_AUTH_FAILED,
        severity=EventSeverity.INVESTIGATE,
        message=f"Vault API request rejected: {reason} session token",
        details={"reason": reason}
    )
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def verify_session_token(x_session_token: Optional[str] = Header(None)) -> str:
    """
    FastAPI dependency guarding every /api/vault route.

    Rejected requests are audited; the presented value is never logged.

    Raises:
        HTTPException: 503 before initialisation, 401 if missing or wrong
    """
    if _SESSION_TOKEN is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session token not initialized"
        )

    if not x_session_token:
        raise _reject("missing", "Missing X-Session-Token header")

    if not secrets.compare_digest(x_session_token.encode("utf-8"), _SESSION_TOKEN.encode("utf-8")):
        raise _reject("mismatched", "Invalid session token")

    return x_session_token
