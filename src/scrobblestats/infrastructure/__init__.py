"""Infrastructure layer: HTTP clients, stores and observability."""
