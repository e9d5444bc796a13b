"""Capture orchestration: configuration, job pool, artifact paths and the engine."""
