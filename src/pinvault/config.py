# Configuration
#
# Settings come from environment variables (optionally via a .env file in
# the working directory). Every value has a safe local-only default.

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

MIN_PBKDF2_ITERATIONS = 100_000


@dataclass(frozen=True)
class VaultConfig:
    """Resolved runtime settings."""
    data_dir: Path = Path("data")
    namespace: str = "sft"
    pbkdf2_iterations: int = MIN_PBKDF2_ITERATIONS
    audit_dir: Path = Path("audit_logs")
    free_attempts: int = 3
    host: str = "127.0.0.1"
    port: int = 8000
    session_token: Optional[str] = None

    @property
    def db_path(self) -> Path:
        return self.data_dir / "vault.db"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, raw, default)
        return default


def load_config(env_file: str = ".env") -> VaultConfig:
    """
    Build a VaultConfig from the environment.

    Recognised variables:
        PINVAULT_DATA_DIR, PINVAULT_NAMESPACE, PINVAULT_PBKDF2_ITERATIONS,
        PINVAULT_AUDIT_DIR, PINVAULT_FREE_ATTEMPTS, PINVAULT_HOST,
        PINVAULT_PORT, PINVAULT_SESSION_TOKEN

    Values already present in the process environment win over the
    .env file.
    """
    load_dotenv(env_file, override=False)

    iterations = _int_env("PINVAULT_PBKDF2_ITERATIONS", MIN_PBKDF2_ITERATIONS)
    if iterations < MIN_PBKDF2_ITERATIONS:
        logger.warning(
            "PINVAULT_PBKDF2_ITERATIONS=%d is below the floor, using %d",
            iterations, MIN_PBKDF2_ITERATIONS,
        )
        iterations = MIN_PBKDF2_ITERATIONS

    return VaultConfig(
        data_dir=Path(os.getenv("PINVAULT_DATA_DIR", "data")),
        namespace=os.getenv("PINVAULT_NAMESPACE", "sft"),
        pbkdf2_iterations=iterations,
        audit_dir=Path(os.getenv("PINVAULT_AUDIT_DIR", "audit_logs")),
        free_attempts=max(0, _int_env("PINVAULT_FREE_ATTEMPTS", 3)),
        host=os.getenv("PINVAULT_HOST", "127.0.0.1"),
        port=_int_env("PINVAULT_PORT", 8000),
        session_token=os.getenv("PINVAULT_SESSION_TOKEN") or None,
    )
