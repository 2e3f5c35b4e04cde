"""SQLite store for alert rules, metric samples, and alert events."""
import sqlite3
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from models.alerts import AlertRule, AlertEvent
from models.enums import DetectionType
from models.metrics import MetricSample

logger = logging.getLogger("lightwatch.db")


class QueryError(Exception):
    """Reading rules or samples from the store failed."""


class PersistenceError(Exception):
    """Writing an alert event to the store failed."""


def _ts(value):
    """Normalise a datetime to a sortable UTC ISO string."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class Database:
    def __init__(self, db_path="data/lightwatch.db"):
        self.db_path = db_path
        self.conn = None
        self._lock = threading.RLock()

    def connect(self):
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()
        return self

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *args):
        self.close()

    def _create_tables(self):
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS alert_rules (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                type TEXT NOT NULL DEFAULT 'threshold',
                metric TEXT NOT NULL,
                operator TEXT NOT NULL,
                threshold REAL NOT NULL,
                duration TEXT,
                service TEXT NOT NULL DEFAULT '',
                enabled INTEGER DEFAULT 1,
                channels TEXT,
                webhook TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_rules_service_enabled
                ON alert_rules(enabled, service);

            CREATE TABLE IF NOT EXISTS metric_samples (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                service TEXT NOT NULL,
                name TEXT NOT NULL,
                value REAL NOT NULL,
                unit TEXT,
                timestamp TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_samples_lookup
                ON metric_samples(service, name, timestamp);

            CREATE TABLE IF NOT EXISTS alert_events (
                id TEXT PRIMARY KEY,
                alert_id TEXT NOT NULL,
                alert_name TEXT NOT NULL,
                service TEXT,
                value REAL,
                threshold REAL,
                status TEXT NOT NULL,
                meta_metric TEXT,
                meta_operator TEXT,
                meta_unit TEXT,
                triggered_at TEXT NOT NULL,
                resolved_at TEXT
            );

            CREATE INDEX IF NOT EXISTS idx_events_alert
                ON alert_events(alert_id, triggered_at);
        """)
        self.conn.commit()

    # --- Alert Rules ---

    def create_rule(self, rule: AlertRule) -> str:
        if not rule.condition.metric or not rule.condition.operator:
            raise ValueError("rule condition requires a metric and an operator")

        now = datetime.now(timezone.utc)
        rule.id = rule.id or uuid.uuid4().hex
        rule.detection_type = rule.detection_type or DetectionType.THRESHOLD.value
        rule.created_at = now
        rule.updated_at = now

        d = rule.to_dict()
        with self._lock:
            self.conn.execute("""
                INSERT INTO alert_rules
                (id, name, type, metric, operator, threshold, duration, service,
                 enabled, channels, webhook, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                d["id"], d["name"], d["type"], d["metric"], d["operator"],
                d["threshold"], d["duration"], d["service"], d["enabled"],
                d["channels"], d["webhook"], d["created_at"], d["updated_at"],
            ))
            self.conn.commit()
        logger.debug(f"Created rule {rule.id} ({rule.name})")
        return rule.id

    def find_enabled_rules(self, service=None):
        query = "SELECT * FROM alert_rules WHERE enabled = 1"
        params = []
        if service:
            query += " AND service = ?"
            params.append(service)
        try:
            with self._lock:
                rows = self.conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise QueryError(f"fetch enabled rules: {e}") from e
        return [AlertRule.from_dict(dict(r)) for r in rows]

    def get_all_rules(self):
        with self._lock:
            rows = self.conn.execute(
                "SELECT * FROM alert_rules ORDER BY created_at DESC"
            ).fetchall()
        return [AlertRule.from_dict(dict(r)) for r in rows]

    def get_rule(self, rule_id):
        with self._lock:
            row = self.conn.execute(
                "SELECT * FROM alert_rules WHERE id = ?", (rule_id,)
            ).fetchone()
        return AlertRule.from_dict(dict(row)) if row else None

    def set_rule_enabled(self, rule_id, enabled):
        """Returns False when no rule has that id."""
        with self._lock:
            cur = self.conn.execute(
                "UPDATE alert_rules SET enabled = ?, updated_at = ? WHERE id = ?",
                (int(enabled), _ts(datetime.now(timezone.utc)), rule_id),
            )
            self.conn.commit()
        return cur.rowcount > 0

    # --- Metric Samples ---

    def save_sample(self, sample: MetricSample):
        self.save_samples([sample])

    def save_samples(self, samples):
        with self._lock:
            self.conn.executemany("""
                INSERT INTO metric_samples (service, name, value, unit, timestamp)
                VALUES (?, ?, ?, ?, ?)
            """, [(s.service, s.name, s.value, s.unit, _ts(s.timestamp)) for s in samples])
            self.conn.commit()
        logger.debug(f"Saved {len(samples)} metric samples")

    def find_samples(self, service, metric, since, limit=100):
        """Samples for service+metric at or after `since`, newest first."""
        try:
            with self._lock:
                rows = self.conn.execute("""
                    SELECT service, name, value, unit, timestamp FROM metric_samples
                    WHERE service = ? AND name = ? AND timestamp >= ?
                    ORDER BY timestamp DESC
                    LIMIT ?
                """, (service, metric, _ts(since), limit)).fetchall()
        except sqlite3.Error as e:
            raise QueryError(f"query metrics: {e}") from e
        return [MetricSample.from_dict(dict(r)) for r in rows]

    # --- Alert Events ---

    def create_event(self, event: AlertEvent) -> str:
        event_id = uuid.uuid4().hex
        d = event.to_dict()
        try:
            with self._lock:
                self.conn.execute("""
                    INSERT INTO alert_events
                    (id, alert_id, alert_name, service, value, threshold, status,
                     meta_metric, meta_operator, meta_unit, triggered_at, resolved_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    event_id, d["alert_id"], d["alert_name"], d["service"],
                    d["value"], d["threshold"], d["status"], d["meta_metric"],
                    d["meta_operator"], d["meta_unit"], _ts(event.triggered_at),
                    _ts(event.resolved_at) if event.resolved_at else None,
                ))
                self.conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"create alert event: {e}") from e
        event.id = event_id
        return event_id

    def find_events_for_rule(self, rule_id, limit=20):
        if limit <= 0:
            limit = 20
        with self._lock:
            rows = self.conn.execute("""
                SELECT * FROM alert_events WHERE alert_id = ?
                ORDER BY triggered_at DESC LIMIT ?
            """, (rule_id, limit)).fetchall()
        return [AlertEvent.from_dict(dict(r)) for r in rows]

    def get_recent_events(self, limit=50):
        if limit <= 0:
            limit = 50
        with self._lock:
            rows = self.conn.execute("""
                SELECT * FROM alert_events ORDER BY triggered_at DESC LIMIT ?
            """, (limit,)).fetchall()
        return [AlertEvent.from_dict(dict(r)) for r in rows]
