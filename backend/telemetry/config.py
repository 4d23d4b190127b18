from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_OFF_VALUES = frozenset({"0", "false", "no", "off"})


def _default_db_path() -> Path:
    # .../backend/telemetry/config.py -> <repo>/data/telemetry/renders.duckdb
    return Path(__file__).resolve().parents[2] / "data" / "telemetry" / "renders.duckdb"


@dataclass(frozen=True)
class TelemetrySettings:
    enabled: bool
    db_path: Path

    @classmethod
    def from_env(cls) -> "TelemetrySettings":
        flag = os.getenv("CHORO_TELEMETRY", "1").strip().lower()
        raw_path = os.getenv("CHORO_TELEMETRY_PATH")
        return cls(
            enabled=flag not in _OFF_VALUES,
            db_path=Path(raw_path) if raw_path else _default_db_path(),
        )
