# pinvault - Main Package
#
# Personal finance tracker core: an encrypted local vault gated by a
# 4-digit PIN. Data never leaves the device.

__version__ = "0.1.0"
__author__ = "pinvault contributors"
__description__ = "PIN-gated encrypted local vault for personal finance records"

from .core import (
    EventSeverity,
    EventType,
    get_audit_logger,
)
from .vault import PinVault

__all__ = [
    "__version__",
    "PinVault",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
]
