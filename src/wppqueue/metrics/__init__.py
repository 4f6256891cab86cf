"""Aggregate metrics for the dashboard."""

from wppqueue.metrics.calculator import (
    DashboardMetrics,
    QueueSummary,
    apply_attendance,
    get_dashboard_metrics,
    get_queue_summary,
    record_attendance,
)

__all__ = [
    "DashboardMetrics",
    "QueueSummary",
    "apply_attendance",
    "get_dashboard_metrics",
    "get_queue_summary",
    "record_attendance",
]
