"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Reconciliation metrics
reconcile_outcomes = Counter(
    'order_reconcile_outcomes_total',
    'Order reconciliation outcomes per slot',
    ['mode', 'outcome']  # system/user; created, mode_updated, released, ...
)

reconcile_latency = Histogram(
    'order_reconcile_latency_seconds',
    'Household reconciliation latency (plan + apply)',
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

order_conflicts = Counter(
    'order_version_conflicts_total',
    'Order writes rejected by optimistic locking'
)

# Scheduling metrics
schedule_changes = Counter(
    'season_schedule_changes_total',
    'Dinner events and team slots changed by schedule generation',
    ['change']  # events_created, events_deleted, affinities_assigned, teams_assigned
)

# Maintenance metrics
maintenance_runs = Counter(
    'maintenance_runs_total',
    'Maintenance job runs',
    ['job', 'status']  # daily/heal; success, error
)

healing_candidates = Counter(
    'healing_candidates_total',
    'Confirmed user bookings found broken by the healing job',
    ['reason']  # deleted, mode_changed, released
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )

# Convenience functions for instrumentation
def record_reconcile_counts(mode: str, counts: dict[str, int]):
    """Record every non-zero outcome counter of one reconciliation."""
    for outcome, value in counts.items():
        if value:
            reconcile_outcomes.labels(mode=mode, outcome=outcome).inc(value)

def record_order_conflict():
    order_conflicts.inc()

def record_schedule_change(change: str, amount: int = 1):
    if amount:
        schedule_changes.labels(change=change).inc(amount)

def record_maintenance_run(job: str, success: bool):
    maintenance_runs.labels(job=job, status="success" if success else "error").inc()

def record_healing_candidate(reason: str):
    healing_candidates.labels(reason=reason).inc()

def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
