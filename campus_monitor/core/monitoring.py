"""
Monitoring and metrics collection for the dashboard service.
Provides Prometheus-compatible metrics plus an in-memory request summary
served by ``/stats``.
"""
import time
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from prometheus_client import Counter, Histogram, Gauge, generate_latest
from collections import defaultdict

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 1.0

REQUEST_COUNT = Counter(
    'campus_monitor_requests_total',
    'Total number of requests',
    ['method', 'endpoint', 'status']
)

REQUEST_DURATION = Histogram(
    'campus_monitor_request_duration_seconds',
    'Request duration in seconds',
    ['method', 'endpoint']
)

ACTIVE_REQUESTS = Gauge(
    'campus_monitor_active_requests',
    'Number of requests currently being processed'
)

STORE_WRITES = Counter(
    'campus_monitor_store_writes_total',
    'Committed writes to the realtime store',
    ['operation']  # set, update, remove, transaction
)

ACTIVE_SUBSCRIPTIONS = Gauge(
    'campus_monitor_active_subscriptions',
    'Open store subscriptions'
)

LIVE_SESSIONS = Gauge(
    'campus_monitor_live_sessions',
    'Connected WebSocket view sessions',
    ['view']  # list, detail
)


class MetricsCollector:
    def __init__(self, max_slow_requests: int = 10):
        self.endpoint_stats = defaultdict(lambda: {
            'count': 0,
            'total_duration': 0.0,
            'min_duration': float('inf'),
            'max_duration': 0.0,
            'errors': 0
        })
        self.slow_requests = []
        self.max_slow_requests = max_slow_requests

    def record_request(self, method: str, path: str, duration: float, status: int):
        stats = self.endpoint_stats[f"{method} {path}"]
        stats['count'] += 1
        stats['total_duration'] += duration
        stats['min_duration'] = min(stats['min_duration'], duration)
        stats['max_duration'] = max(stats['max_duration'], duration)
        if status >= 400:
            stats['errors'] += 1

        if duration > SLOW_REQUEST_SECONDS:
            self.slow_requests.append({
                'method': method,
                'path': path,
                'duration': duration,
                'status': status,
                'timestamp': time.time()
            })
            if len(self.slow_requests) > self.max_slow_requests:
                self.slow_requests.pop(0)

    def get_stats(self):
        result = {}
        for endpoint, stats in self.endpoint_stats.items():
            count = stats['count']
            result[endpoint] = {
                'count': count,
                'avg_duration_ms': round(stats['total_duration'] / count * 1000, 2) if count else 0,
                'min_duration_ms': round(stats['min_duration'] * 1000, 2) if stats['min_duration'] != float('inf') else 0,
                'max_duration_ms': round(stats['max_duration'] * 1000, 2),
                'errors': stats['errors'],
                'error_rate': round(stats['errors'] / count * 100, 2) if count else 0
            }
        return result

    def get_slow_requests(self):
        return sorted(self.slow_requests, key=lambda x: x['duration'], reverse=True)


metrics_collector = MetricsCollector()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect request metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        ACTIVE_REQUESTS.inc()
        start_time = time.time()
        try:
            response = await call_next(request)
            duration = time.time() - start_time
            REQUEST_COUNT.labels(method=request.method, endpoint=request.url.path, status=response.status_code).inc()
            REQUEST_DURATION.labels(method=request.method, endpoint=request.url.path).observe(duration)
            metrics_collector.record_request(request.method, request.url.path, duration, response.status_code)

            if duration > SLOW_REQUEST_SECONDS:
                logger.warning(
                    "Slow request: %s %s took %.2fs (status=%s)",
                    request.method,
                    request.url.path,
                    duration,
                    response.status_code
                )
            return response
        except Exception:
            duration = time.time() - start_time
            REQUEST_COUNT.labels(method=request.method, endpoint=request.url.path, status=500).inc()
            metrics_collector.record_request(request.method, request.url.path, duration, 500)
            raise
        finally:
            ACTIVE_REQUESTS.dec()


def get_metrics():
    """Get Prometheus metrics in text format."""
    return generate_latest()


def get_dashboard_stats():
    """Request statistics grouped by endpoint."""
    stats = metrics_collector.get_stats()
    total_requests = sum(s['count'] for s in stats.values())
    weighted = sum(s['avg_duration_ms'] * s['count'] for s in stats.values())
    return {
        'endpoints': stats,
        'slow_requests': metrics_collector.get_slow_requests(),
        'summary': {
            'total_requests': total_requests,
            'total_errors': sum(s['errors'] for s in stats.values()),
            'avg_response_time_ms': round(weighted / total_requests, 2) if total_requests else 0,
        }
    }
