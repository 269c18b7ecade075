"""Cross-cutting concerns: logging and metrics."""
