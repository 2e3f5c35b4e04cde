"""Alert evaluation engine."""
import logging
from datetime import datetime, timezone

from models.alerts import AlertEvent, EventMeta
from models.database import PersistenceError, QueryError
from models.enums import DetectionType, EventStatus
from utils.constants import DEFAULT_WINDOW, SAMPLE_FETCH_LIMIT
from utils.durations import resolve_window

logger = logging.getLogger("lightwatch.alerts.engine")

# Unknown operators fall through to "no breach"
OPERATOR_MAP = {
    "gt": lambda v, t: v > t,
    "gte": lambda v, t: v >= t,
    "lt": lambda v, t: v < t,
    "lte": lambda v, t: v <= t,
    "eq": lambda v, t: v == t,
}


def breached(value, operator, threshold):
    """True when `value` satisfies `operator` against `threshold`."""
    if value is None:
        return False
    func = OPERATOR_MAP.get(operator)
    if func is None:
        return False
    return func(value, threshold)


def threshold_strategy(rule, samples):
    """Single-point check against the newest sample."""
    return breached(samples[0].value, rule.condition.operator, rule.condition.threshold)


# rate_change and anomaly are reserved; rules of those types are skipped
STRATEGIES = {
    DetectionType.THRESHOLD.value: threshold_strategy,
}


def build_event(rule, sample, triggered_at):
    return AlertEvent(
        alert_id=rule.id,
        alert_name=rule.name,
        service=rule.service,
        value=sample.value,
        threshold=rule.condition.threshold,
        status=EventStatus.FIRING.value,
        meta=EventMeta(
            metric=rule.condition.metric,
            operator=rule.condition.operator,
            unit=sample.unit,
        ),
        triggered_at=triggered_at,
    )


class AlertEngine:
    """Evaluate enabled rules against recent samples and record breaches.

    `rules_manager` supplies rules (`get_enabled_rules`), `db` supplies
    samples (`find_samples`) and stores events (`create_event`), and
    `notifier` receives a `submit(url, event)` for rules with a webhook.
    """

    def __init__(self, rules_manager, db, notifier=None, clock=None):
        self.rules_manager = rules_manager
        self.db = db
        self.notifier = notifier
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def tick(self):
        """Run one pass over every enabled rule.

        Returns the events created. Only a failure to load rules propagates;
        a failing rule is logged and the pass moves on to the next one.
        """
        rules = self.rules_manager.get_enabled_rules()
        fired = []

        for rule in rules:
            try:
                event = self.evaluate_rule(rule)
            except (QueryError, PersistenceError) as e:
                logger.warning(f"Rule evaluation failed: alert_id={rule.id} name={rule.name} error={e}")
                continue
            except Exception as e:
                logger.warning(
                    f"Rule evaluation failed: alert_id={rule.id} name={rule.name} error={e}",
                    exc_info=True,
                )
                continue
            if event is not None:
                fired.append(event)

        logger.debug(f"Pass complete: {len(rules)} rules, {len(fired)} fired")
        return fired

    def _fetch_samples(self, rule, now):
        window = resolve_window(rule.condition.duration, DEFAULT_WINDOW)
        return self.db.find_samples(
            rule.service, rule.condition.metric, now - window, SAMPLE_FETCH_LIMIT
        )

    def evaluate_rule(self, rule):
        """Evaluate one rule; returns the persisted event on breach, else None."""
        strategy = STRATEGIES.get(rule.detection_type or DetectionType.THRESHOLD.value)
        if strategy is None:
            logger.debug(f"Skipping rule {rule.id}: detection type {rule.detection_type!r} not implemented")
            return None

        now = self._clock()
        samples = self._fetch_samples(rule, now)
        if not samples:
            return None

        if not strategy(rule, samples):
            return None

        event = build_event(rule, samples[0], now)
        event_id = self.db.create_event(event)
        event.id = event_id

        logger.warning(
            f"Alert triggered: alert_event_id={event_id} alert_name={rule.name} "
            f"service={rule.service} value={event.value} threshold={event.threshold}"
        )

        if rule.webhook:
            self._notify(rule.webhook, event)
        return event

    def _notify(self, url, event):
        if self.notifier is None:
            logger.debug(f"No notifier configured, skipping webhook {url}")
            return
        try:
            self.notifier.submit(url, event)
        except Exception as e:
            logger.error(f"Webhook dispatch error: url={url} error={e}")

    def test_rules(self):
        """Evaluate ALL rules without persisting or notifying, for validation."""
        now = self._clock()
        results = []

        for rule in self.rules_manager.get_all_rules():
            value = None
            would_fire = False
            try:
                samples = self._fetch_samples(rule, now)
            except Exception as e:
                logger.warning(f"Sample query failed for rule {rule.id}: {e}")
                samples = []
            if samples:
                value = samples[0].value
                strategy = STRATEGIES.get(rule.detection_type or DetectionType.THRESHOLD.value)
                would_fire = bool(strategy and strategy(rule, samples))

            results.append({
                "rule_id": rule.id,
                "name": rule.name,
                "service": rule.service,
                "metric": rule.condition.metric,
                "operator": rule.condition.operator,
                "threshold": rule.condition.threshold,
                "current_value": value,
                "would_fire": would_fire,
                "enabled": rule.enabled,
            })
        return results
