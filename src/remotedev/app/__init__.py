"""Application wiring (configuration and logging)."""
