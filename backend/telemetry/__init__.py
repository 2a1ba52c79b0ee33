"""
Best-effort local telemetry of map instantiation attempts (DuckDB).
"""
