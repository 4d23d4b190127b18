from __future__ import annotations

RENDER_COLUMNS: tuple[str, ...] = (
    "ts_ms",
    "endpoint",
    "map_name",
    "stat",
    "metric",
    "added",
    "updated",
    "removed",
    "render_ms",
    "stats_json",
)

CREATE_RENDERS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS renders (
  ts_ms BIGINT NOT NULL,
  endpoint VARCHAR NOT NULL,
  map_name VARCHAR,
  stat VARCHAR,
  metric VARCHAR,
  added INTEGER DEFAULT 0,
  updated INTEGER DEFAULT 0,
  removed INTEGER DEFAULT 0,
  render_ms DOUBLE,
  stats_json VARCHAR
);
"""

INSERT_RENDER_SQL = (
    f"INSERT INTO renders ({', '.join(RENDER_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in RENDER_COLUMNS)})"
)

# Percentiles ignore passes that painted nothing (render_ms is NULL there).
RENDER_SUMMARY_SQL = """
SELECT
  map_name AS "map",
  endpoint,
  count(*) AS n,
  avg(render_ms) AS "avgRenderMs",
  quantile_cont(render_ms, 0.5) AS "p50RenderMs",
  quantile_cont(render_ms, 0.95) AS "p95RenderMs",
  coalesce(sum(added), 0) AS added,
  coalesce(sum(removed), 0) AS removed
FROM renders
{where_sql}
GROUP BY ALL
ORDER BY "map", endpoint
"""
