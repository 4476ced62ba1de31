"""Fehlerklassen für Scheduler, Shop-Konfiguration und Sync"""

from typing import Optional


class SyncError(Exception):
    """Basisklasse aller Fehler dieses Pakets"""


class InvalidSchedule(SyncError):
    """Ungültiger Zeitplan (Uhrzeit-Format, Intervall <= 0)"""


class JobNotFound(SyncError, KeyError):
    """Job-ID existiert nicht"""

    def __init__(self, job_id: str):
        super().__init__(job_id)
        self.job_id = job_id

    def __str__(self):
        return f"Job nicht gefunden: {self.job_id}"


class ShopNotFound(SyncError, KeyError):
    """Shop-ID existiert nicht (mehr) in der Konfiguration"""

    def __init__(self, shop_id: str):
        super().__init__(shop_id)
        self.shop_id = shop_id

    def __str__(self):
        return f"Shop mit ID '{self.shop_id}' nicht gefunden"


class ShopValidationError(SyncError, ValueError):
    """Ungültige Shop-Konfiguration"""


class ShopUnreachable(SyncError):
    """Quell- oder Zielsystem eines Shops nicht erreichbar"""

    def __init__(self, shop_id: str, message: str):
        super().__init__(f"Shop '{shop_id}' nicht erreichbar: {message}")
        self.shop_id = shop_id


class RecordTransformFailed(SyncError):
    """Einzelne Bestellung konnte nicht gemappt/geschrieben werden"""

    def __init__(self, order_number: str, message: str):
        super().__init__(f"Bestellung {order_number}: {message}")
        self.order_number = order_number


class PersistenceFailure(SyncError):
    """Job-Liste konnte nicht gespeichert werden"""


class CatastrophicRunFailure(SyncError):
    """Sync-Lauf konnte für keinen Shop gestartet werden"""


class JtlApiError(SyncError):
    """Fehler der JTL-Wawi REST API"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
