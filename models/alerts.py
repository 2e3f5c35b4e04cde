"""Dataclasses for alert rules and the events they produce."""
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from models.enums import DetectionType, EventStatus


def _parse_ts(value):
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


@dataclass
class AlertCondition:
    metric: str = ""
    operator: str = "gt"
    threshold: float = 0.0
    duration: str = ""  # lookback window, e.g. "5m"


@dataclass
class AlertRule:
    id: str = ""
    name: str = ""
    detection_type: str = DetectionType.THRESHOLD.value
    condition: AlertCondition = field(default_factory=AlertCondition)
    service: str = ""
    enabled: bool = True
    channels: list = field(default_factory=list)
    webhook: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self):
        """Flatten into a single dict for DB storage."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.detection_type,
            "metric": self.condition.metric,
            "operator": self.condition.operator,
            "threshold": self.condition.threshold,
            "duration": self.condition.duration or None,
            "service": self.service,
            "enabled": int(self.enabled),
            "channels": json.dumps(self.channels or []),
            "webhook": self.webhook or None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, d):
        channels = d.get("channels") or []
        if isinstance(channels, str):
            channels = json.loads(channels)
        return cls(
            id=d.get("id", ""),
            name=d.get("name", ""),
            detection_type=d.get("type") or DetectionType.THRESHOLD.value,
            condition=AlertCondition(
                metric=d.get("metric", ""),
                operator=d.get("operator", ""),
                threshold=float(d.get("threshold") or 0.0),
                duration=d.get("duration") or "",
            ),
            service=d.get("service", ""),
            enabled=bool(d.get("enabled", True)),
            channels=channels,
            webhook=d.get("webhook") or "",
            created_at=_parse_ts(d.get("created_at")),
            updated_at=_parse_ts(d.get("updated_at")),
        )


@dataclass
class EventMeta:
    """Diagnostic context captured when a rule fires."""
    metric: Optional[str] = None
    operator: Optional[str] = None
    unit: Optional[str] = None


@dataclass
class AlertEvent:
    id: Optional[str] = None
    alert_id: str = ""
    alert_name: str = ""
    service: str = ""
    value: float = 0.0
    threshold: float = 0.0
    status: str = EventStatus.FIRING.value
    meta: EventMeta = field(default_factory=EventMeta)
    triggered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # Never set yet: nothing transitions an event to resolved
    resolved_at: Optional[datetime] = None

    def to_dict(self):
        return {
            "id": self.id,
            "alert_id": self.alert_id,
            "alert_name": self.alert_name,
            "service": self.service,
            "value": self.value,
            "threshold": self.threshold,
            "status": self.status,
            "meta_metric": self.meta.metric,
            "meta_operator": self.meta.operator,
            "meta_unit": self.meta.unit,
            "triggered_at": self.triggered_at.isoformat(),
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
        }

    @classmethod
    def from_dict(cls, d):
        return cls(
            id=d.get("id"),
            alert_id=d.get("alert_id", ""),
            alert_name=d.get("alert_name", ""),
            service=d.get("service", ""),
            value=float(d.get("value") or 0.0),
            threshold=float(d.get("threshold") or 0.0),
            status=d.get("status", EventStatus.FIRING.value),
            meta=EventMeta(
                metric=d.get("meta_metric"),
                operator=d.get("meta_operator"),
                unit=d.get("meta_unit"),
            ),
            triggered_at=_parse_ts(d.get("triggered_at")) or datetime.now(timezone.utc),
            resolved_at=_parse_ts(d.get("resolved_at")),
        )
