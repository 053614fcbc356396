"""
Prometheus Metrics for Observability

Tracks stage latency, blob operations and email delivery. The host
application decides whether and how to expose the default registry.
"""

import time
from contextlib import contextmanager

from prometheus_client import Counter, Histogram

# =============================================================================
# Metrics Definitions
# =============================================================================

# Latency - Per Stage (orientation, render, upload, delete)
stage_latency_seconds = Histogram(
    "jetpack_stage_latency_seconds",
    "Time spent in each storage pipeline stage",
    labelnames=["stage", "status"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

blob_operations_total = Counter(
    "jetpack_blob_operations_total",
    "Total number of blob store operations",
    labelnames=["operation", "status"]
)

derivatives_total = Counter(
    "jetpack_derivatives_total",
    "Total number of image derivatives rendered"
)

emails_total = Counter(
    "jetpack_emails_total",
    "Total number of email send attempts, per recipient",
    labelnames=["status"]
)


# =============================================================================
# Helper Functions
# =============================================================================

@contextmanager
def track_stage_latency(stage: str):
    """
    Context manager to track stage latency.
    
    Usage:
        with track_stage_latency("render"):
            # do work
    """
    start = time.perf_counter()
    status = "success"
    try:
        yield
    except BaseException:
        status = "error"
        raise
    finally:
        stage_latency_seconds.labels(stage=stage, status=status).observe(time.perf_counter() - start)


def record_blob_operation(operation: str, status: str):
    """Record an upload or delete against the blob store."""
    blob_operations_total.labels(operation=operation, status=status).inc()


def record_email(status: str):
    """Record one email delivery attempt."""
    emails_total.labels(status=status).inc()
