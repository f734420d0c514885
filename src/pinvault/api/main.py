# Local HTTP API - FastAPI Backend
#
# Serves the vault's plaintext CRUD surface to the UI on localhost only.
# Key material and ciphertext never cross this boundary.

import logging
from typing import Dict, Type

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import load_config
from ..core import EventSeverity, EventType, get_audit_logger
from ..vault.errors import (
    AuthenticationError,
    FormatError,
    LockedError,
    NotFoundError,
    StorageError,
    ValidationError,
    VaultError,
)
from .security import get_session_token, initialize_session_token
from .vault_routes import router as vault_router

logger = logging.getLogger(__name__)

app = FastAPI(
    title="pinvault API",
    description="PIN-gated encrypted personal finance vault",
    version=__version__,
)

_allowed_origins = [
    "http://localhost:3000", "http://127.0.0.1:3000",
    "http://localhost:8000", "http://127.0.0.1:8000",
    "http://localhost:8080", "http://127.0.0.1:8080",
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Most specific first: CredentialCorruptedError is a FormatError
ERROR_STATUS: Dict[Type[VaultError], int] = {
    LockedError: status.HTTP_403_FORBIDDEN,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    FormatError: status.HTTP_400_BAD_REQUEST,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(error: VaultError) -> int:
    for error_type, code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(VaultError)
async def vault_error_handler(request: Request, exc: VaultError):
    code = status_for(exc)
    if code >= 500:
        logger.error("Vault failure on %s %s: %s", request.method, request.url.path, exc)
    body = {"detail": str(exc), "error": type(exc).__name__}
    field = getattr(exc, "field", None)
    if field:
        body["field"] = field
    return JSONResponse(status_code=code, content=body)


# Register routers
app.include_router(vault_router)


@app.on_event("startup")
async def startup_event():
    """Make sure the session token required by every vault route exists."""
    try:
        get_session_token()
    except RuntimeError:
        initialize_session_token(load_config().session_token)
    get_audit_logger().log_event(
        event_type=EventType.SYSTEM_START,
        severity=EventSeverity.INFO,
        message="pinvault API server starting",
        details={"version": __version__}
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Lock the vault so the key does not outlive the server."""
    from .vault_routes import _vault

    if _vault is not None:
        _vault.lock()

    get_audit_logger().log_event(
        event_type=EventType.SYSTEM_STOP,
        severity=EventSeverity.INFO,
        message="pinvault API server shutting down"
    )


def start_api_server(host: str = "127.0.0.1", port: int = 8000):
    """
    Start FastAPI server.

    Args:
        host: Host to bind to (default: localhost only)
        port: Port to listen on
    """
    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    start_api_server()
