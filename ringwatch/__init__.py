import sys
import time
import uuid
import os
import tempfile
import threading
from typing import Dict, Optional
from dotenv import load_dotenv
from prometheus_client import (
    CollectorRegistry, Counter, Histogram, Gauge, Info,
    generate_latest
)
from loguru import logger

load_dotenv()

__version__ = "2.1.0"

DURATION_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0, float('inf'))

_correlation_context = threading.local()


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracing."""
    return f"req_{uuid.uuid4().hex[:12]}"


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from thread-local storage."""
    return getattr(_correlation_context, 'correlation_id', None)


def set_correlation_id(correlation_id: Optional[str]):
    """Set the correlation ID in thread-local storage."""
    _correlation_context.correlation_id = correlation_id


def _resolve_logs_dir(service_name: str) -> str:
    logs_dir = os.environ.get('LOGS_DIR')

    if not logs_dir:
        project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
        logs_dir = os.path.join(project_root, "logs")

    try:
        os.makedirs(logs_dir, exist_ok=True)

        # Test write access by creating and removing a temporary file
        test_file = os.path.join(logs_dir, f'.write_test_{service_name}_{int(time.time())}')
        with open(test_file, 'w') as f:
            f.write('test')
        os.remove(test_file)

    except (OSError, PermissionError) as e:
        fallback_logs_dir = os.path.join(tempfile.gettempdir(), 'ringwatch-logs')
        try:
            os.makedirs(fallback_logs_dir, exist_ok=True)
            logs_dir = fallback_logs_dir
            print(f"Warning: Using fallback logs directory {logs_dir} due to permission error: {e}")
        except (OSError, PermissionError):
            logs_dir = os.getcwd()
            print(f"Warning: Using current directory for logs due to permission errors. Original error: {e}")

    return logs_dir


def setup_logger(service_name: str):
    """
    Setup file and console logging for a service.

    Args:
        service_name: Name attached to every record as extra[service].
    """

    def patch_record(record):
        record["extra"]["service"] = service_name
        correlation_id = get_correlation_id()
        if correlation_id:
            record["extra"]["correlation_id"] = correlation_id
        record["extra"]["timestamp"] = time.time()
        return True

    logs_dir = _resolve_logs_dir(service_name)
    log_level = os.environ.get('LOG_LEVEL', 'INFO').upper()

    logger.remove()

    # File logger with JSON serialization for log shipping
    try:
        logger.add(
            os.path.join(logs_dir, f"{service_name}.log"),
            rotation="500 MB",
            level=log_level,
            filter=patch_record,
            serialize=True,
            format="{time} | {level} | {extra[service]} | {message} | {extra}"
        )
    except Exception as e:
        print(f"Warning: Could not set up file logging: {e}. Proceeding with console-only logging.")

    console_format = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level}</level> | <cyan>{extra[service]}</cyan> | {message} | <white>{extra}</white>"

    logger.add(
        sys.stdout,
        format=console_format,
        level=log_level,
        filter=patch_record,
        enqueue=True,
        backtrace=False,
        diagnose=False,
    )

    logger.info(f"Logger configured with level: {log_level}")

    return service_name


_service_registries: Dict[str, "MetricsRegistry"] = {}
_metrics_lock = threading.Lock()


class MetricsRegistry:
    """Metrics registry for a service, exposed in Prometheus text format"""

    def __init__(self, service_name: str):
        self.service_name = service_name
        self.registry = CollectorRegistry()
        self._init_common_metrics()
        self._init_detection_metrics()

    def _init_common_metrics(self):
        self.service_info = Info(
            'service_info',
            'Service information',
            registry=self.registry
        )
        self.service_info.info({
            'service_name': self.service_name,
            'version': __version__,
        })

        self.errors_total = Counter(
            'service_errors_total',
            'Total number of errors by type',
            ['error_type', 'component'],
            registry=self.registry
        )

        self.health_status = Gauge(
            'service_health_status',
            'Service health status (1=healthy, 0=unhealthy)',
            registry=self.registry
        )
        self.health_status.set(1)

    def _init_detection_metrics(self):
        self.detection_runs_total = Counter(
            'detection_runs_total',
            'Total number of detection runs by outcome',
            ['outcome'],
            registry=self.registry
        )
        self.detection_duration = Histogram(
            'detection_run_duration_seconds',
            'Wall time of one detection run',
            buckets=DURATION_BUCKETS,
            registry=self.registry
        )
        self.rings_detected = Gauge(
            'detection_rings_detected',
            'Number of final rings in the latest run',
            registry=self.registry
        )
        self.accounts_flagged = Gauge(
            'detection_accounts_flagged',
            'Number of suspicious accounts in the latest run',
            registry=self.registry
        )

    def get_metrics_text(self) -> str:
        """Get metrics in Prometheus text format"""
        return generate_latest(self.registry).decode('utf-8')

    def record_error(self, error_type: str, component: str = "unknown"):
        self.errors_total.labels(error_type=error_type, component=component).inc()

    def record_run(self, duration_seconds: float, rings: int, flagged: int):
        self.detection_runs_total.labels(outcome="success").inc()
        self.detection_duration.observe(duration_seconds)
        self.rings_detected.set(rings)
        self.accounts_flagged.set(flagged)

    def set_health_status(self, healthy: bool):
        self.health_status.set(1 if healthy else 0)


def setup_metrics(service_name: str) -> MetricsRegistry:
    """
    Setup metrics for a service following the same pattern as setup_logger.

    Args:
        service_name: Name of the service (e.g., 'ringwatch-api')

    Returns:
        MetricsRegistry: Configured metrics registry for the service
    """
    with _metrics_lock:
        if service_name in _service_registries:
            logger.debug(f"Metrics already setup for {service_name}")
            return _service_registries[service_name]

        metrics_registry = MetricsRegistry(service_name)
        _service_registries[service_name] = metrics_registry

        logger.info(f"Metrics setup completed for service: {service_name}")
        return metrics_registry
