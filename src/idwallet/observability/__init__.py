"""
Observability components for idwallet.

Provides Prometheus metrics for enrollment runs.
"""

from .metrics import EnrollmentMetrics

__all__ = [
    "EnrollmentMetrics",
]
