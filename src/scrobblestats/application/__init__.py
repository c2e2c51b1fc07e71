"""Application layer: session cache and core services."""
