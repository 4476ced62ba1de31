"""
Logger Factory für Sync, Scheduler und API

Jeder Modul-Logger schreibt nach stderr (nur Fehler) und in logs/<subdir>/<subdir>.log.
Ohne beschreibbares Log-Verzeichnis bleibt es beim Console-Handler.
"""
import logging
import sys
from pathlib import Path
from typing import Optional

from config.settings import LOG_DIR

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
LOG_DATE_FORMAT = '%d.%m.%Y %H:%M:%S'


def _build_handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    return handler


def _open_log_file(log_subdir: str, file_name: Optional[str], log_dir: Optional[Path]) -> logging.FileHandler:
    """Raises OSError, wenn das Verzeichnis nicht angelegt werden kann"""
    target = Path(log_dir or LOG_DIR) / log_subdir
    target.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(target / (file_name or f"{log_subdir}.log"), encoding='utf-8')


def create_module_logger(
    module_name: str,
    log_subdir: str,
    console_level: int = logging.ERROR,
    file_level: int = logging.INFO,
    file_name: str = None,
    log_dir: Path = None
) -> logging.Logger:
    """
    Logger für ein Modul holen bzw. einmalig einrichten.

    Args:
        module_name: Name des Loggers (z.B. 'JTL_SYNC', 'SCHEDULER')
        log_subdir: Unterverzeichnis unter LOG_DIR (z.B. 'jtl_sync')
        console_level: Schwelle für stderr
        file_level: Schwelle für die Log-Datei
        file_name: Dateiname, default {log_subdir}.log
        log_dir: Basisverzeichnis, default LOG_DIR aus settings
    """
    logger = logging.getLogger(module_name)
    logger.setLevel(logging.DEBUG)

    # Bereits eingerichtet (mehrfacher Import)
    if logger.hasHandlers():
        return logger

    logger.addHandler(_build_handler(logging.StreamHandler(sys.stderr), console_level))

    try:
        file_handler = _open_log_file(log_subdir, file_name, log_dir)
    except OSError as e:
        logger.warning(f"Log-Datei für {module_name} nicht verfügbar: {e}")
        return logger

    logger.addHandler(_build_handler(file_handler, file_level))
    return logger


# ✅ Zentraler Fehler-Logger (logs/app/app.log)
app_logger = create_module_logger('APP', 'app',
                                  console_level=logging.ERROR,
                                  file_level=logging.WARNING)
