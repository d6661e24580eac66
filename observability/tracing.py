"""Optional Logfire/OpenTelemetry spans for pipeline stages.

When enabled, PydanticAI provider calls are instrumented automatically and
each pipeline stage (search, scrape, generate, deliver) gets its own span.
When disabled, trace_operation is a no-op apart from a debug timing line.

Requirements:
    pip install logfire

Enable via configuration:
    ENABLE_LOGFIRE=true
    LOGFIRE_TOKEN=your-token  # Optional for cloud dashboard

Usage:
    >>> setup_tracing(enabled=True, service_name="edbrief")
    >>> with trace_operation("scrape", {"sources": 12}) as attrs:
    ...     documents = await scrape_all(sources, extractor)
    ...     attrs["documents"] = len(documents)
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generator

logger = logging.getLogger(__name__)


@dataclass
class TracingContext:
    """Process-wide tracing state."""
    enabled: bool = False
    service_name: str = "edbrief"
    token: str = ""
    _logfire_configured: bool = field(default=False, init=False)


_context = TracingContext()


def setup_tracing(
    enabled: bool = False,
    service_name: str = "edbrief",
    token: str = "",
) -> TracingContext:
    """Configure Logfire and instrument PydanticAI.

    Falls back to disabled tracing if logfire is missing or fails to
    configure; tracing never blocks a run.

    Args:
        enabled: Whether to enable tracing
        service_name: Service name reported with every span
        token: Logfire write token (optional)
    """
    _context.enabled = enabled
    _context.service_name = service_name
    _context.token = token

    if not enabled:
        logger.debug("Tracing disabled")
        return _context

    try:
        import logfire

        logfire.configure(service_name=service_name, token=token or None)
        logfire.instrument_pydantic_ai()
        _context._logfire_configured = True
        logger.info("Logfire tracing enabled | service=%s", service_name)
    except ImportError:
        logger.warning("Logfire not installed. Tracing disabled.")
        _context.enabled = False
    except Exception as e:
        logger.error("Failed to configure Logfire: %s", e)
        _context.enabled = False

    return _context


@contextmanager
def trace_operation(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[dict[str, Any], None, None]:
    """Trace a pipeline stage.

    Args:
        name: Span name
        attributes: Attributes set when the span opens

    Yields:
        Dictionary of result attributes, attached to the span on exit
    """
    start = time.monotonic()
    result_attrs: dict[str, Any] = {}
    try:
        if _context.enabled and _context._logfire_configured:
            import logfire

            with logfire.span(name, **(attributes or {})) as span:
                try:
                    yield result_attrs
                finally:
                    for key, value in result_attrs.items():
                        span.set_attribute(key, value)
        else:
            yield result_attrs
    finally:
        logger.debug("Operation complete | name=%s duration=%.2fs", name, time.monotonic() - start)
