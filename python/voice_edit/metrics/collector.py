"""
Prometheus Metrics Collector for the voice session.

Provides metrics for monitoring:
- Connection attempts and active sessions
- Signaling round-trip latency
- Control channel event counts and dropped messages
- Tool call outcomes, latency and duplicate suppression
- Background task counts
"""

import logging
from typing import Optional

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger("voice.metrics")


# Session metrics
CONNECTS_TOTAL = Counter(
    'voice_connects_total',
    'Total connection attempts',
    ['status']  # 'connected', 'device_error', 'signaling_error', 'transport_error', 'error'
)
ACTIVE_SESSIONS = Gauge(
    'voice_active_sessions',
    'Number of currently connected voice sessions'
)
TRANSPORT_DROPS_TOTAL = Counter(
    'voice_transport_drops_total',
    'Unexpected peer transport drops'
)

# Signaling metrics
SIGNALING_LATENCY = Histogram(
    'voice_signaling_latency_seconds',
    'Offer/answer exchange latency',
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0]
)

# Control channel metrics
CONTROL_EVENTS_TOTAL = Counter(
    'voice_control_events_total',
    'Inbound control channel events',
    ['type']
)
CONTROL_EVENTS_DROPPED = Counter(
    'voice_control_events_dropped_total',
    'Malformed control channel messages dropped'
)

# Tool metrics
TOOL_CALLS_TOTAL = Counter(
    'voice_tool_calls_total',
    'Tool executions',
    ['tool', 'status']  # 'success', 'failure'
)
TOOL_CALLS_DUPLICATE = Counter(
    'voice_tool_calls_duplicate_total',
    'Function calls suppressed because their call_id was already seen'
)
TOOL_LATENCY = Histogram(
    'voice_tool_latency_seconds',
    'Tool execution latency',
    ['tool'],
    buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0]
)

# Task registry metrics
TASKS_ACTIVE = Gauge(
    'voice_tasks_active',
    'Number of active background tasks'
)
TASKS_FAILED_TOTAL = Counter(
    'voice_tasks_failed_total',
    'Total number of failed tasks'
)


class MetricsCollector:
    """
    Centralized metrics collector for the voice session.

    Provides convenient methods for recording metrics
    and starts the Prometheus HTTP server.
    """

    def __init__(self, port: int = 9090, host: str = "0.0.0.0"):
        """
        Initialize metrics collector.

        Args:
            port: Port for Prometheus HTTP server
            host: Host to bind to
        """
        self.port = port
        self.host = host
        self._started = False

    def start(self) -> bool:
        """
        Start the Prometheus HTTP server.

        Returns:
            True if the server is running
        """
        if self._started:
            return True

        try:
            start_http_server(self.port, addr=self.host)
            self._started = True
            logger.info(f"Prometheus metrics server started on {self.host}:{self.port}")
            return True
        except Exception as e:
            logger.error(f"Failed to start metrics server: {e}")
            return False

    # Session metrics
    def connect_attempt(self, status: str) -> None:
        """Record the outcome of a connection attempt."""
        CONNECTS_TOTAL.labels(status=status).inc()

    def session_opened(self) -> None:
        ACTIVE_SESSIONS.inc()

    def session_closed(self) -> None:
        ACTIVE_SESSIONS.dec()

    def transport_dropped(self) -> None:
        TRANSPORT_DROPS_TOTAL.inc()

    # Signaling metrics
    def signaling_exchange(self, latency: float) -> None:
        """Record an offer/answer round trip."""
        SIGNALING_LATENCY.observe(latency)

    # Control channel metrics
    def control_event(self, event_type: str) -> None:
        CONTROL_EVENTS_TOTAL.labels(type=event_type).inc()

    def control_event_dropped(self) -> None:
        CONTROL_EVENTS_DROPPED.inc()

    # Tool metrics
    def tool_call(self, tool: str, latency: float, success: bool = True) -> None:
        """Record a completed tool execution."""
        status = "success" if success else "failure"
        TOOL_CALLS_TOTAL.labels(tool=tool, status=status).inc()
        TOOL_LATENCY.labels(tool=tool).observe(latency)

    def duplicate_call(self) -> None:
        TOOL_CALLS_DUPLICATE.inc()

    # Task metrics
    def update_tasks(self, active: int, failed_delta: int = 0) -> None:
        """Update task metrics."""
        TASKS_ACTIVE.set(active)
        if failed_delta > 0:
            TASKS_FAILED_TOTAL.inc(failed_delta)


# Global instance
_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    """Get or create the global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
