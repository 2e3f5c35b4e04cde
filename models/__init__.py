"""Data models."""
from models.enums import DetectionType, Operator, EventStatus
from models.metrics import MetricSample
from models.alerts import AlertCondition, AlertRule, EventMeta, AlertEvent
