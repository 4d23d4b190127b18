from __future__ import annotations

import threading

from telemetry.config import TelemetrySettings
from telemetry.store import TelemetryStore

_STORE: TelemetryStore | None = None
_STORE_LOCK = threading.RLock()


def get_store() -> TelemetryStore | None:
    """
    Process-wide store, or None when telemetry is switched off.

    The store is reopened when CHORO_TELEMETRY_PATH points somewhere else.
    """
    global _STORE
    settings = TelemetrySettings.from_env()
    if not settings.enabled:
        return None
    with _STORE_LOCK:
        if _STORE is not None and _STORE.path.resolve() != settings.db_path.resolve():
            _STORE.stop()
            _STORE.conn.close()
            _STORE = None
        if _STORE is None:
            _STORE = TelemetryStore.open(settings.db_path)
            _STORE.start()
        return _STORE


def reset_store() -> None:
    """Close the current store and delete its database file."""
    global _STORE
    with _STORE_LOCK:
        store, _STORE = _STORE, None
    if store is not None:
        store.reset()
    else:
        TelemetrySettings.from_env().db_path.unlink(missing_ok=True)
