"""JSON Persistenz - Atomares Schreiben (temp-Datei + rename)"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def write_json_atomic(path: Path, data: Any):
    """
    Schreibe JSON atomar: erst in eine temp-Datei im selben Verzeichnis,
    dann os.replace(). Ein Absturz mitten im Schreiben lässt die alte Datei intakt.

    Raises:
        OSError: Verzeichnis/Datei nicht schreibbar
        TypeError: Daten nicht serialisierbar
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def read_json(path: Path) -> Any:
    """
    Lade JSON-Datei.

    Raises:
        FileNotFoundError: Datei existiert nicht
        json.JSONDecodeError / OSError: Datei defekt oder nicht lesbar
    """
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)
