import logging
from prometheus_client import Counter, Histogram, Info, generate_latest
from prometheus_client.core import CollectorRegistry

logger = logging.getLogger(__name__)

# Prometheus Registry
REGISTRY = CollectorRegistry()

trip_operations_total = Counter(
    'trip_operations_total',
    'Total trip write/read operations',
    ['status', 'service', 'method'],
    registry=REGISTRY
)

trip_operation_duration_seconds = Histogram(
    'trip_operation_duration_seconds',
    'Trip operation duration in seconds',
    ['service', 'method'],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0],
    registry=REGISTRY
)

cascade_deletions_total = Counter(
    'trip_cascade_deletions_total',
    'Dependent rows removed after their last trip was deleted',
    ['entity'],
    registry=REGISTRY
)

system_info = Info(
    'trip_service_info',
    'System information',
    registry=REGISTRY
)


class PrometheusMetricsCollector:
    """Thin wrapper over the module-level Prometheus instruments"""
    
    def __init__(self):
        system_info.info({
            'version': '0.1.0',
            'service': 'ev-trip-service'
        })
    
    def record_operation(
        self,
        service_name: str,
        method_name: str,
        duration_seconds: float,
        success: bool,
    ):
        status = 'success' if success else 'error'

        trip_operations_total.labels(
            status=status,
            service=service_name,
            method=method_name
        ).inc()
        
        trip_operation_duration_seconds.labels(
            service=service_name,
            method=method_name
        ).observe(duration_seconds)

    def record_cascade_deletion(self, entity: str):
        cascade_deletions_total.labels(entity=entity).inc()
    
    def get_prometheus_metrics(self) -> bytes:
        """Get Prometheus metrics in text format"""
        return generate_latest(REGISTRY)

# Global instance
prometheus_collector = PrometheusMetricsCollector()
