# backend/dealer_scheduling/services/base.py
"""
Base service for the scheduler.

Provides the pieces every service shares:
- Transaction management (services own commit/rollback, repositories never commit)
- Operation logging with structured context
- Performance measurement feeding Prometheus
"""

from contextlib import contextmanager
from functools import wraps
import logging
import threading
import time
from typing import Any, Callable, Dict, Iterator, Type, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import DomainException, RepositoryException, ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SLOW_OPERATION_SECONDS = 1.0


class BaseService:
    """Base class for all service layer components."""

    _class_metrics: Dict[str, Dict[str, Dict[str, float]]] = {}
    _metrics_lock = threading.Lock()

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(
        self, failure: Type[DomainException] = ServiceException
    ) -> Iterator[Session]:
        """
        Unit of work on ``self.db``.

        Commits when the block completes, rolls back on any error. Data
        access failures are re-raised as ``failure`` so the API layer can
        map them; domain exceptions pass through untouched.

        Usage:
            with self.transaction():
                repo.create(...)
        """
        try:
            yield self.db
            self.db.commit()
            self.logger.debug("Transaction committed successfully")
        except (SQLAlchemyError, RepositoryException) as e:
            self.logger.error(f"Transaction failed: {str(e)}")
            self.db.rollback()
            raise failure(f"Database operation failed: {str(e)}") from e
        except BaseException:
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator to measure operation performance.

        Usage:
            @BaseService.measure_operation("admit")
            def admit(self, request):
                ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                start_time = time.perf_counter()
                success = False
                error_type = None
                try:
                    result = func(self, *args, **kwargs)
                    success = True
                    return result
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    elapsed = time.perf_counter() - start_time
                    self._record_metric(operation_name, elapsed, success)
                    if elapsed > SLOW_OPERATION_SECONDS:
                        self.logger.warning(
                            f"Slow operation detected: {operation_name} took {elapsed:.2f}s"
                        )
                    prometheus_metrics.record_service_operation(
                        service=self.__class__.__name__,
                        operation=operation_name,
                        duration=elapsed,
                        status="success" if success else "error",
                        error_type=error_type,
                    )

            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log an operation with structured context."""
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        class_name = self.__class__.__name__
        with BaseService._metrics_lock:
            metrics = BaseService._class_metrics.setdefault(class_name, {})
            data = metrics.setdefault(
                operation,
                {
                    "count": 0,
                    "total_time": 0.0,
                    "success_count": 0,
                    "failure_count": 0,
                    "max_time": 0.0,
                },
            )
            data["count"] += 1
            data["total_time"] += elapsed
            data["max_time"] = max(data["max_time"], elapsed)
            if success:
                data["success_count"] += 1
            else:
                data["failure_count"] += 1

    def get_metrics(self) -> Dict[str, Any]:
        """Per-operation timing summary for this service class."""
        with BaseService._metrics_lock:
            metrics = dict(BaseService._class_metrics.get(self.__class__.__name__, {}))
        result: Dict[str, Any] = {}
        for operation, data in metrics.items():
            count = data["count"]
            if not count:
                continue
            result[operation] = {
                "count": count,
                "avg_time": data["total_time"] / count,
                "max_time": data["max_time"],
                "success_rate": data["success_count"] / count,
                "failure_count": data["failure_count"],
            }
        return result
