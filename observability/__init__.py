"""Observability for the EdBrief pipeline: logging setup and optional tracing.

setup_logging:
    Console + rotating file handlers, text or JSON, tagged with the run id.

setup_tracing / trace_operation:
    Optional Logfire spans around pipeline stages and provider calls.

Example:
    >>> from observability import setup_logging, trace_operation
    >>> setup_logging(config)
    >>> with trace_operation("search"):
    ...     pass
"""

from observability.logging import setup_logging, set_run_context, clear_context
from observability.tracing import setup_tracing, trace_operation, TracingContext

__all__ = [
    "setup_logging",
    "set_run_context",
    "clear_context",
    "setup_tracing",
    "trace_operation",
    "TracingContext",
]
