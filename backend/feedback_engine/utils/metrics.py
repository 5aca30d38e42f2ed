"""
Performance monitoring and metrics collection.
Tracks request latency, review analysis outcomes, and analytics computation time.
"""

import time
import logging
from typing import Dict, Optional
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from collections import defaultdict, deque

logger = logging.getLogger(__name__)


@dataclass
class Metric:
    """Single metric data point."""
    name: str
    value: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    labels: Dict[str, str] = field(default_factory=dict)


class MetricsCollector:
    """Collects and aggregates application metrics."""

    def __init__(self, max_history: int = 1000):
        self.max_history = max_history
        self.metrics: Dict[str, deque] = defaultdict(lambda: deque(maxlen=max_history))
        self.counters: Dict[str, int] = defaultdict(int)

    def record_request(self, endpoint: str, duration: float, status_code: int):
        """Record API request metrics."""
        self.metrics['request_duration'].append(Metric(
            name='request_duration',
            value=duration,
            labels={'endpoint': endpoint, 'status': str(status_code)}
        ))
        self.counters[f'requests_{status_code}'] += 1
        self.counters['total_requests'] += 1

    def record_analysis(self, outcome: str, duration: float, reason: Optional[str] = None):
        """Record how a review analysis was produced (model, empty_review, degraded)."""
        labels = {'outcome': outcome}
        if reason:
            labels['reason'] = reason
        self.metrics['analysis_duration'].append(Metric(
            name='analysis_duration',
            value=duration,
            labels=labels
        ))
        self.counters[f'analysis_{outcome}'] += 1
        self.counters['analyses_total'] += 1

    def record_analytics(self, duration: float, success: bool):
        """Record analytics snapshot computation."""
        self.metrics['analytics_duration'].append(Metric(
            name='analytics_duration',
            value=duration,
            labels={'success': str(success)}
        ))
        self.counters['analytics_success' if success else 'analytics_failed'] += 1

    def get_stats(self, metric_name: str, minutes: int = 5) -> Dict:
        """Get statistics for a metric over time window."""
        if metric_name not in self.metrics:
            return {}

        cutoff = datetime.now(timezone.utc) - timedelta(minutes=minutes)
        values = sorted(m.value for m in self.metrics[metric_name] if m.timestamp > cutoff)

        if not values:
            return {}

        return {
            'count': len(values),
            'min': values[0],
            'max': values[-1],
            'avg': sum(values) / len(values),
            'p50': values[len(values) // 2],
            'p95': values[int(len(values) * 0.95)] if len(values) > 1 else 0,
        }

    def get_all_counters(self) -> Dict[str, int]:
        """Get all counter values."""
        return dict(self.counters)

    def get_summary(self) -> Dict:
        """Get comprehensive metrics summary."""
        return {
            'counters': self.get_all_counters(),
            'request_stats': self.get_stats('request_duration', minutes=5),
            'analysis_stats': self.get_stats('analysis_duration', minutes=30),
            'analytics_stats': self.get_stats('analytics_duration', minutes=30),
        }

    def reset(self):
        self.metrics.clear()
        self.counters.clear()


# Global metrics collector
metrics_collector = MetricsCollector()


class PerformanceTimer:
    """Context manager for timing operations."""

    def __init__(self, operation: str, log_threshold: float = 1.0):
        self.operation = operation
        self.log_threshold = log_threshold
        self.start_time = None
        self.duration = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self.start_time

        if self.duration > self.log_threshold:
            logger.warning(f"⏱️ SLOW: {self.operation} took {self.duration:.2f}s")
        else:
            logger.debug(f"⏱️ {self.operation} took {self.duration:.2f}s")

        return False

    @property
    def elapsed(self) -> float:
        """Seconds since entering, usable inside the block."""
        if self.duration is not None:
            return self.duration
        return time.perf_counter() - self.start_time
