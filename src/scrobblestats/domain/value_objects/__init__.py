"""Value objects shared across layers."""
