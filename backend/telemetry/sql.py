from __future__ import annotations

CREATE_EVENTS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS instantiations (
  ts_ms BIGINT,
  user_name TEXT,
  fingerprint TEXT,
  outcome TEXT,
  sent BOOLEAN,
  layergroupid TEXT,
  duration_ms DOUBLE,
  errors_json TEXT
);
"""

SUMMARY_SQL_TEMPLATE = """
SELECT
  user_name,
  outcome,
  COUNT(*) AS n,
  SUM(CASE WHEN sent THEN 1 ELSE 0 END) AS n_sent,
  COUNT(DISTINCT fingerprint) AS n_fingerprints,
  AVG(duration_ms) AS avg_ms,
  quantile_cont(duration_ms, 0.50) AS p50_ms,
  quantile_cont(duration_ms, 0.95) AS p95_ms
FROM instantiations
{where_sql}
GROUP BY user_name, outcome
ORDER BY user_name, outcome
"""

RECENT_FAILURES_SQL_TEMPLATE = """
SELECT
  ts_ms,
  user_name,
  fingerprint,
  outcome,
  errors_json
FROM instantiations
WHERE {where_sql}
ORDER BY ts_ms DESC
LIMIT ?
"""

INSERT_EVENTS_SQL = """
INSERT INTO instantiations
  (ts_ms, user_name, fingerprint, outcome, sent, layergroupid, duration_ms, errors_json)
VALUES (?, ?, ?, ?, ?, ?, ?, ?)
"""
