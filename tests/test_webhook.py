"""Tests for the webhook notifier."""
import threading
import pytest
import requests
from datetime import datetime, timezone
from unittest.mock import patch, MagicMock

from alerts.webhook import WebhookNotifier, build_payload
from models.alerts import AlertEvent, EventMeta


def _event(**kwargs):
    defaults = dict(
        id="evt1", alert_id="r1", alert_name="High CPU", service="svc1",
        value=95.0, threshold=90.0, status="firing",
        meta=EventMeta(metric="cpu", operator="gt", unit="%"),
        triggered_at=datetime(2026, 3, 1, 12, 0, 5, 123456, tzinfo=timezone.utc),
    )
    defaults.update(kwargs)
    return AlertEvent(**defaults)


# ── Payload ──────────────────────────────────────────

def test_payload_literal_field_set():
    payload = build_payload(_event())
    assert payload == {
        "alert_name": "High CPU",
        "service": "svc1",
        "value": 95.0,
        "threshold": 90.0,
        "status": "firing",
        "triggered_at": "2026-03-01T12:00:05Z",
    }


# ── Delivery ─────────────────────────────────────────

def test_deliver_posts_json_once():
    with patch("alerts.webhook.requests.post") as mock_post:
        mock_post.return_value = MagicMock(status_code=202)
        notifier = WebhookNotifier(max_workers=1)
        status = notifier.deliver("http://hooks.local/cpu", _event())
        notifier.shutdown()

    assert status == 202
    mock_post.assert_called_once()
    args, kwargs = mock_post.call_args
    assert args[0] == "http://hooks.local/cpu"
    assert kwargs["json"]["value"] == 95.0
    assert kwargs["headers"]["Content-Type"] == "application/json"
    assert kwargs["timeout"] == 10


def test_deliver_failure_is_logged_not_raised(caplog):
    with patch("alerts.webhook.requests.post") as mock_post:
        mock_post.side_effect = requests.ConnectionError("refused")
        notifier = WebhookNotifier(max_workers=1)
        with caplog.at_level("ERROR", logger="lightwatch.alerts.webhook"):
            status = notifier.deliver("http://hooks.local/cpu", _event())
        notifier.shutdown()

    assert status is None
    assert mock_post.call_count == 1  # no retry
    assert "hooks.local/cpu" in caplog.text


def test_unexpected_delivery_error_is_logged(caplog):
    with patch("alerts.webhook.requests.post") as mock_post:
        mock_post.side_effect = RuntimeError("bad payload")
        notifier = WebhookNotifier(max_workers=1)
        with caplog.at_level("ERROR", logger="lightwatch.alerts.webhook"):
            future = notifier.submit("http://hooks.local/cpu", _event())
            assert future.result(timeout=5) is None
        notifier.shutdown()

    assert "hooks.local/cpu" in caplog.text
    assert "bad payload" in caplog.text


def test_error_status_is_not_retried():
    with patch("alerts.webhook.requests.post") as mock_post:
        mock_post.return_value = MagicMock(status_code=500)
        notifier = WebhookNotifier(max_workers=1)
        future = notifier.submit("http://hooks.local/cpu", _event())
        assert future.result(timeout=5) == 500
        notifier.shutdown()
    assert mock_post.call_count == 1


def test_submit_runs_off_caller_thread():
    seen = {}

    def fake_post(url, **kwargs):
        seen["thread"] = threading.current_thread().name
        return MagicMock(status_code=200)

    with patch("alerts.webhook.requests.post", side_effect=fake_post):
        notifier = WebhookNotifier(max_workers=2)
        future = notifier.submit("http://hooks.local/cpu", _event())
        future.result(timeout=5)
        notifier.shutdown()

    assert seen["thread"].startswith("lightwatch-webhook")


def test_shutdown_drains_in_flight_deliveries():
    release = threading.Event()
    delivered = []

    def slow_post(url, **kwargs):
        release.wait(5)
        delivered.append(url)
        return MagicMock(status_code=200)

    with patch("alerts.webhook.requests.post", side_effect=slow_post):
        notifier = WebhookNotifier(max_workers=2)
        notifier.submit("http://a", _event())
        notifier.submit("http://b", _event())
        release.set()
        abandoned = notifier.shutdown(timeout=5)

    assert abandoned == 0
    assert sorted(delivered) == ["http://a", "http://b"]


def test_shutdown_abandons_after_timeout():
    release = threading.Event()

    def stuck_post(url, **kwargs):
        release.wait(5)
        return MagicMock(status_code=200)

    with patch("alerts.webhook.requests.post", side_effect=stuck_post):
        notifier = WebhookNotifier(max_workers=1)
        notifier.submit("http://a", _event())
        notifier.submit("http://b", _event())
        abandoned = notifier.shutdown(timeout=0.1)
        release.set()

    assert abandoned >= 1


def test_submit_after_shutdown_is_dropped():
    with patch("alerts.webhook.requests.post") as mock_post:
        notifier = WebhookNotifier(max_workers=1)
        notifier.shutdown()
        assert notifier.submit("http://a", _event()) is None
    mock_post.assert_not_called()
