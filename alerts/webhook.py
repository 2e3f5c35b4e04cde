"""Webhook notifier: best-effort POST of firing alerts on a bounded worker pool."""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait

import requests

from utils.constants import (
    DEFAULT_DRAIN_TIMEOUT_SECONDS, DEFAULT_WEBHOOK_WORKERS, WEBHOOK_TIMEOUT_SECONDS,
)
from utils.formatters import format_rfc3339

logger = logging.getLogger("lightwatch.alerts.webhook")


def build_payload(event) -> dict:
    """Literal webhook body for an alert event."""
    return {
        "alert_name": event.alert_name,
        "service": event.service,
        "value": event.value,
        "threshold": event.threshold,
        "status": event.status,
        "triggered_at": format_rfc3339(event.triggered_at),
    }


class WebhookNotifier:
    """Deliver alert events to rule-configured webhook URLs.

    Each submission is one POST attempt with a fixed timeout; there is no
    retry. Deliveries run on a capped thread pool so evaluation never waits
    on them, and `shutdown()` drains what is still in flight.
    """

    def __init__(self, max_workers=DEFAULT_WEBHOOK_WORKERS, timeout=WEBHOOK_TIMEOUT_SECONDS):
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="lightwatch-webhook"
        )
        self._pending = set()
        self._lock = threading.Lock()
        self._closed = False

    def submit(self, url, event):
        """Queue one delivery. Returns the Future, or None once shut down."""
        with self._lock:
            if self._closed:
                logger.warning(f"Notifier closed, dropping webhook for {event.alert_name} to {url}")
                return None
            future = self._executor.submit(self.deliver, url, event)
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future):
        with self._lock:
            self._pending.discard(future)

    def deliver(self, url, event):
        """POST the event once. Returns the HTTP status code, or None on failure."""
        try:
            resp = requests.post(
                url,
                json=build_payload(event),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Webhook delivery failed: url={url} error={e}")
            return None
        except Exception as e:
            logger.error(f"Webhook delivery error: url={url} error={e}", exc_info=True)
            return None

        logger.info(f"Webhook delivered: url={url} status={resp.status_code}")
        return resp.status_code

    def shutdown(self, timeout=DEFAULT_DRAIN_TIMEOUT_SECONDS):
        """Stop accepting deliveries and wait up to `timeout` for in-flight ones.

        Deliveries still queued when the deadline passes are cancelled.
        Returns the number of deliveries abandoned.
        """
        with self._lock:
            self._closed = True
            outstanding = set(self._pending)

        if outstanding:
            logger.info(f"Draining {len(outstanding)} webhook deliveries (timeout {timeout}s)")
        _, not_done = wait(outstanding, timeout=timeout)
        abandoned = len(not_done)
        if abandoned:
            logger.warning(f"Abandoning {abandoned} webhook deliveries after drain timeout")
        self._executor.shutdown(wait=False, cancel_futures=True)
        return abandoned
