"""Infrastructure layer - cross-cutting concerns."""

from quickkv.infrastructure.config import CLISettings, QuickConfiguration, normalize_database_path
from quickkv.infrastructure.logging import build_logger, get_logger, setup_logging
from quickkv.infrastructure.metrics import MetricsRegistry, get_metrics
from quickkv.infrastructure.tracing import get_tracer, setup_tracing, trace_span

__all__ = [
    "QuickConfiguration",
    "CLISettings",
    "normalize_database_path",
    "setup_logging",
    "get_logger",
    "build_logger",
    "MetricsRegistry",
    "get_metrics",
    "setup_tracing",
    "get_tracer",
    "trace_span",
]
