"""Infrastructure layer: observability and in-memory adapters."""
