from __future__ import annotations

import json
import logging
import queue
import threading
import time
from dataclasses import astuple, dataclass, field
from pathlib import Path
from typing import Any, Mapping

import duckdb

from telemetry.sql import CREATE_RENDERS_TABLE_SQL, INSERT_RENDER_SQL, RENDER_SUMMARY_SQL

logger = logging.getLogger(__name__)

BATCH_ROWS = 250
BATCH_AGE_S = 0.5


@dataclass(frozen=True)
class RenderRecord:
    """One row of the `renders` table; field order matches RENDER_COLUMNS."""

    ts_ms: int
    endpoint: str
    map_name: str | None
    stat: str | None
    metric: str | None
    added: int
    updated: int
    removed: int
    render_ms: float | None
    stats_json: str


@dataclass
class TelemetryStore:
    """
    Render-pass telemetry kept in a DuckDB file.

    Callers only enqueue; one daemon thread owns all writes and batches them
    by size or age.
    """

    path: Path
    conn: duckdb.DuckDBPyConnection
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _pending: "queue.SimpleQueue[RenderRecord]" = field(
        default_factory=queue.SimpleQueue, repr=False
    )
    _written: int = field(default=0, repr=False)
    _queued: int = field(default=0, repr=False)
    _closing: threading.Event = field(default_factory=threading.Event, repr=False)
    _writer: threading.Thread | None = field(default=None, repr=False)

    @classmethod
    def open(cls, path: Path) -> "TelemetryStore":
        path.parent.mkdir(parents=True, exist_ok=True)
        store = cls(path=path, conn=duckdb.connect(str(path)))
        with store._lock:
            store.conn.execute(CREATE_RENDERS_TABLE_SQL)
        return store

    def start(self) -> None:
        if self._writer is not None and self._writer.is_alive():
            return
        self._closing.clear()
        self._writer = threading.Thread(
            target=self._write_loop, name="render-telemetry", daemon=True
        )
        self._writer.start()

    def stop(self, *, timeout_s: float = 2.0) -> None:
        self._closing.set()
        writer, self._writer = self._writer, None
        if writer is not None:
            writer.join(timeout=timeout_s)

    def record(
        self,
        *,
        endpoint: str,
        map_name: str | None,
        stat: str | None,
        metric: str | None,
        delta: Mapping[str, int],
        render_ms: float | None,
        stats: Mapping[str, Any] | None = None,
    ) -> None:
        self.start()
        with self._lock:
            self._queued += 1
        self._pending.put(
            RenderRecord(
                ts_ms=time.time_ns() // 1_000_000,
                endpoint=endpoint,
                map_name=map_name,
                stat=stat,
                metric=metric,
                added=int(delta.get("added", 0)),
                updated=int(delta.get("updated", 0)),
                removed=int(delta.get("removed", 0)),
                render_ms=None if render_ms is None else float(render_ms),
                stats_json=json.dumps(dict(stats or {}), ensure_ascii=False, default=str),
            )
        )

    def flush(self, *, timeout_s: float = 2.0) -> bool:
        """
        Block until every record queued so far is in the table.

        Returns False on timeout.
        """
        target = self._queued
        deadline = time.monotonic() + timeout_s
        while self._written < target:
            if self._writer is None or time.monotonic() >= deadline:
                return False
            time.sleep(0.01)
        return True

    def query(self, sql: str, params: list[Any] | None = None) -> list[tuple]:
        # Reads share the writer's connection; DuckDB locks the file per process.
        with self._lock:
            return self.conn.execute(sql, params or []).fetchall()

    def summary(
        self,
        *,
        map_name: str | None = None,
        endpoint: str | None = None,
        since_ms: int | None = None,
    ) -> list[dict[str, Any]]:
        filters = {
            "map_name = ?": map_name,
            "endpoint = ?": endpoint,
            "ts_ms >= ?": since_ms,
        }
        clauses = [c for c, v in filters.items() if v is not None]
        params = [v for v in filters.values() if v is not None]
        where_sql = ("WHERE " + " AND ".join(clauses)) if clauses else ""

        with self._lock:
            cur = self.conn.execute(RENDER_SUMMARY_SQL.format(where_sql=where_sql), params)
            names = [d[0] for d in cur.description]
            rows = cur.fetchall()
        return [dict(zip(names, row)) for row in rows]

    def reset(self) -> None:
        self.stop()
        with self._lock:
            self.conn.close()
        self.path.unlink(missing_ok=True)

    def _write(self, batch: list[RenderRecord]) -> None:
        if not batch:
            return
        with self._lock:
            self.conn.executemany(INSERT_RENDER_SQL, [astuple(r) for r in batch])
            self.conn.execute("CHECKPOINT")
        self._written += len(batch)
        batch.clear()

    def _write_loop(self) -> None:
        batch: list[RenderRecord] = []
        oldest = 0.0
        while True:
            closing = self._closing.is_set()
            try:
                rec = self._pending.get(timeout=0.05)
            except queue.Empty:
                rec = None
            if rec is not None:
                if not batch:
                    oldest = time.monotonic()
                batch.append(rec)
                # Keep draining while records are arriving.
                if len(batch) < BATCH_ROWS and not closing:
                    continue
            if batch and (
                closing or len(batch) >= BATCH_ROWS or time.monotonic() - oldest >= BATCH_AGE_S
            ):
                try:
                    self._write(batch)
                except duckdb.Error:
                    logger.warning("Dropped %d telemetry rows", len(batch), exc_info=True)
                    self._written += len(batch)
                    batch.clear()
            if closing and rec is None and not batch:
                return
