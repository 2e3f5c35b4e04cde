"""Shared test fixtures."""
import os
import sys
import pytest
import tempfile

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.database import Database
from models.alerts import AlertRule, AlertCondition
from models.metrics import MetricSample
from datetime import datetime, timezone, timedelta


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    db = Database(db_path)
    db.connect()
    yield db
    db.close()
    os.unlink(db_path)


@pytest.fixture
def now():
    return datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_rule(name="High CPU", metric="cpu", operator="gt", threshold=90,
              service="svc1", duration="", webhook="", rule_id="", **kwargs):
    return AlertRule(
        id=rule_id,
        name=name,
        condition=AlertCondition(metric=metric, operator=operator,
                                 threshold=threshold, duration=duration),
        service=service,
        webhook=webhook,
        **kwargs,
    )


def make_sample(value, service="svc1", metric="cpu", unit="%", at=None, ago=timedelta(seconds=30)):
    at = at or datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc) - ago
    return MetricSample(service=service, name=metric, value=value, unit=unit, timestamp=at)


class RecordingNotifier:
    """Stands in for WebhookNotifier; records submissions instead of sending."""
    def __init__(self):
        self.calls = []

    def submit(self, url, event):
        self.calls.append((url, event))
