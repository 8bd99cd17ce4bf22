"""
Prometheus metrics for the scheduler.

Metrics live on a private registry so importing the module twice (tests,
reloads) never collides with the process-wide default registry.
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "scheduler_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "scheduler_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "scheduler_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

admissions_total = Counter(
    "scheduler_admissions_total",
    "Admission decisions by booking type and outcome code",
    ["booking_type", "outcome"],  # outcome: ADMITTED or a rejection code
    registry=REGISTRY,
)

slot_lock_acquisitions_total = Counter(
    "scheduler_slot_lock_acquisitions_total",
    "Per-slot admission lock acquisitions",
    ["scope", "result"],  # scope: process | row; result: acquired | timeout
    registry=REGISTRY,
)

slot_lock_wait_seconds = Histogram(
    "scheduler_slot_lock_wait_seconds",
    "Time spent waiting for the per-slot admission lock",
    ["scope"],
    registry=REGISTRY,
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0),
)

notification_deliveries_total = Counter(
    "scheduler_notification_deliveries_total",
    "Booking notice deliveries by kind and terminal status",
    ["kind", "status"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Recording helpers around the module-level collectors."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingAdmissionService')
            operation: Operation/method name (e.g., 'admit')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_admission(booking_type: str, outcome: str) -> None:
        admissions_total.labels(booking_type=booking_type, outcome=outcome).inc()

    @staticmethod
    def record_slot_lock(scope: str, result: str, waited: float) -> None:
        slot_lock_acquisitions_total.labels(scope=scope, result=result).inc()
        slot_lock_wait_seconds.labels(scope=scope).observe(max(waited, 0.0))

    @staticmethod
    def record_notification_outcome(kind: str, status: str) -> None:
        notification_deliveries_total.labels(kind=kind, status=status).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Generate Prometheus metrics in exposition format."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


# Singleton instance
prometheus_metrics = PrometheusMetrics()
