# services/analytics/__init__.py

from services.analytics.base_engine import BaseAnalyticsEngine
from services.analytics.pin_engine import AggregateSnapshot, PinAnalyticsEngine, compute_analytics
from services.analytics.content_queue_engine import ContentQueueEngine

ENGINE_REGISTRY: dict[str, type[BaseAnalyticsEngine]] = {
    "pins": PinAnalyticsEngine,
    "content_queue": ContentQueueEngine,
}
