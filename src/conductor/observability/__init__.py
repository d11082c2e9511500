"""OpenTelemetry-based observability for Conductor."""

from conductor.observability.tracing import get_tracer, span

__all__ = ["get_tracer", "span"]
