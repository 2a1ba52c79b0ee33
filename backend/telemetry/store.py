from __future__ import annotations

import json
import queue
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import duckdb

from telemetry.sql import (
    CREATE_EVENTS_TABLE_SQL,
    INSERT_EVENTS_SQL,
    RECENT_FAILURES_SQL_TEMPLATE,
    SUMMARY_SQL_TEMPLATE,
)
from windshaft.log import get_logger
from windshaft.map_base import InstantiationOutcome

logger = get_logger(__name__)


def _safe_float(v) -> float | None:
    if v is None:
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


@dataclass
class TelemetryStore:
    """
    One row per instantiation attempt, written by a background thread.

    Recording is best-effort and never blocks or fails the caller.
    """

    path: Path
    conn: duckdb.DuckDBPyConnection
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _q: "queue.Queue[dict[str, Any]]" = field(default_factory=queue.Queue, repr=False)
    _stop: threading.Event = field(default_factory=threading.Event, repr=False)
    _worker: threading.Thread | None = field(default=None, repr=False)

    def ensure_schema(self) -> None:
        with self._lock:
            self.conn.execute(CREATE_EVENTS_TABLE_SQL)

    def start(self) -> None:
        if self._worker is not None:
            return
        self._stop.clear()
        self._worker = threading.Thread(
            target=self._run, name="telemetry-writer", daemon=True
        )
        self._worker.start()

    def stop(self, *, timeout_s: float = 2.0) -> None:
        """
        Stop the writer thread and prevent further flushes.
        """
        self._stop.set()
        w = self._worker
        if w is not None and w.is_alive():
            w.join(timeout=timeout_s)
        self._worker = None

    def record(self, *, user_name: str, outcome: InstantiationOutcome) -> None:
        # Non-blocking: enqueue and return.
        self.start()
        try:
            self._q.put_nowait(
                {
                    "ts_ms": int(time.time() * 1000),
                    "user_name": str(user_name),
                    "fingerprint": outcome.fingerprint,
                    "outcome": "success" if outcome.ok else outcome.kind.value,
                    "sent": bool(outcome.sent),
                    "layergroupid": outcome.layergroupid,
                    "duration_ms": float(outcome.duration_ms),
                    "errors_json": json.dumps(
                        [e.to_dict() for e in outcome.errors], ensure_ascii=False
                    ),
                }
            )
        except queue.Full:
            logger.warning("Telemetry queue full; dropping instantiation event")

    def flush(self, *, timeout_s: float = 2.0) -> None:
        """
        Wait until queued events are processed (used by tests).
        """
        if self._worker is None:
            return
        deadline = time.time() + timeout_s
        while time.time() < deadline:
            if self._q.unfinished_tasks == 0:
                break
            time.sleep(0.01)
        # Give the writer thread time to flush on its time-based trigger.
        time.sleep(0.55)

    def query(self, sql: str, params: list[Any] | None = None) -> list[tuple]:
        """
        Run a read query inside the process that owns the connection.

        DuckDB uses file locks across processes; reading through the writer's
        connection avoids lock failures while telemetry is being written.
        """
        with self._lock:
            if params:
                return self.conn.execute(sql, params).fetchall()
            return self.conn.execute(sql).fetchall()

    def summary(
        self,
        *,
        user_name: str | None = None,
        since_ms: int | None = None,
    ) -> list[dict[str, Any]]:
        where = []
        params: list[Any] = []
        if user_name:
            where.append("user_name = ?")
            params.append(user_name)
        if since_ms is not None:
            where.append("ts_ms >= ?")
            params.append(int(since_ms))

        where_sql = f"WHERE {' AND '.join(where)}" if where else ""
        rows = self.query(SUMMARY_SQL_TEMPLATE.format(where_sql=where_sql), params)

        out: list[dict[str, Any]] = []
        for user_v, outcome_v, n, n_sent, n_fp, avg_ms, p50, p95 in rows:
            out.append(
                {
                    "userName": user_v,
                    "outcome": outcome_v,
                    "n": int(n),
                    "sent": int(n_sent or 0),
                    "distinctRequests": int(n_fp or 0),
                    "avgMs": _safe_float(avg_ms),
                    "p50Ms": _safe_float(p50),
                    "p95Ms": _safe_float(p95),
                }
            )
        return out

    def recent_failures(
        self,
        *,
        user_name: str | None = None,
        limit: int = 25,
    ) -> list[dict[str, Any]]:
        where = ["outcome <> 'success'"]
        params: list[Any] = []
        if user_name:
            where.append("user_name = ?")
            params.append(user_name)
        params.append(int(max(1, min(200, limit))))

        rows = self.query(
            RECENT_FAILURES_SQL_TEMPLATE.format(where_sql=" AND ".join(where)),
            params,
        )
        return [
            {
                "tsMs": int(ts_ms),
                "userName": user_v,
                "fingerprint": fp,
                "outcome": outcome_v,
                "errors": json.loads(errors_json) if errors_json else [],
            }
            for ts_ms, user_v, fp, outcome_v, errors_json in rows
        ]

    def reset(self) -> None:
        # Stop the writer first so it can't write to a closed connection.
        self.stop(timeout_s=2.0)
        with self._lock:
            self.conn.close()
            self.path.unlink(missing_ok=True)

    def _run(self) -> None:
        self.ensure_schema()
        batch: list[dict[str, Any]] = []
        last_flush = time.time()

        def flush_batch() -> None:
            nonlocal batch
            if not batch:
                return
            with self._lock:
                try:
                    self.conn.executemany(
                        INSERT_EVENTS_SQL,
                        [
                            (
                                e["ts_ms"],
                                e["user_name"],
                                e["fingerprint"],
                                e["outcome"],
                                e["sent"],
                                e["layergroupid"],
                                e["duration_ms"],
                                e["errors_json"],
                            )
                            for e in batch
                        ],
                    )
                    # Make results visible to readers immediately.
                    self.conn.execute("CHECKPOINT;")
                except duckdb.Error as exc:
                    logger.warning("Dropping %d telemetry events: %s", len(batch), exc)
            batch = []

        while not self._stop.is_set():
            try:
                e = self._q.get(timeout=0.1)
            except queue.Empty:
                e = None

            if e is not None:
                batch.append(e)
                self._q.task_done()

            # Flush on size or time.
            now = time.time()
            if len(batch) >= 250 or (batch and (now - last_flush) >= 0.5):
                flush_batch()
                last_flush = now

        # Drain remaining
        while True:
            try:
                e = self._q.get_nowait()
            except queue.Empty:
                break
            batch.append(e)
            self._q.task_done()
        flush_batch()
