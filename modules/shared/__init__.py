"""
Shared Module - Zentrale Infrastruktur für alle Module

Verwendung in neuen Modulen:
    from modules.shared import create_module_logger, log_service, SyncError
    from modules.shared.database import get_engine
"""

# Logging (lokale Imports aus modules/shared/logging/)
from .logging import create_module_logger, log_service, app_logger

# Fehlerklassen
from .errors import (
    SyncError,
    InvalidSchedule,
    JobNotFound,
    ShopNotFound,
    ShopValidationError,
    ShopUnreachable,
    RecordTransformFailed,
    PersistenceFailure,
    CatastrophicRunFailure,
    JtlApiError
)

# Public API
__all__ = [
    # Logging
    "create_module_logger",
    "log_service",
    "app_logger",

    # Errors
    "SyncError",
    "InvalidSchedule",
    "JobNotFound",
    "ShopNotFound",
    "ShopValidationError",
    "ShopUnreachable",
    "RecordTransformFailed",
    "PersistenceFailure",
    "CatastrophicRunFailure",
    "JtlApiError"
]
