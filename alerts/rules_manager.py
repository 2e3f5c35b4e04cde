"""Alert rules loading and management."""
import logging
import yaml
from pathlib import Path
from models.alerts import AlertRule, AlertCondition
from models.enums import DetectionType, Operator

logger = logging.getLogger("lightwatch.alerts.rules")

VALID_OPERATORS = {op.value for op in Operator}
VALID_TYPES = {t.value for t in DetectionType}


class RulesManager:
    """Rule source backed by the database, with YAML seeding."""

    def __init__(self, db):
        self.db = db

    def import_file(self, rules_path):
        """Create rules from a YAML file. Returns the number of rules created."""
        path = Path(rules_path)
        if not path.exists():
            logger.warning(f"Alert rules file not found: {path}")
            return 0
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        existing = {(r.name, r.service) for r in self.db.get_all_rules()}
        created = 0
        for rule in self._parse_rules(data.get("rules", [])):
            if (rule.name, rule.service) in existing:
                logger.debug(f"Rule already present, skipping: {rule.name} ({rule.service})")
                continue
            self.db.create_rule(rule)
            existing.add((rule.name, rule.service))
            created += 1
        logger.info(f"Imported {created} rules from {path}")
        return created

    def _parse_rules(self, raw_rules):
        rules = []
        for r in raw_rules:
            cond = r.get("condition") or {}
            if not cond.get("metric") or not cond.get("operator"):
                logger.warning(f"Rule {r.get('name')!r} is missing a metric or operator, skipping")
                continue
            if cond["operator"] not in VALID_OPERATORS:
                logger.warning(f"Unsupported operator in rule {r.get('name')!r}: {cond['operator']} (it will never fire)")
            try:
                threshold = float(cond.get("threshold", 0))
            except (TypeError, ValueError):
                logger.warning(f"Rule {r.get('name')!r} has a non-numeric threshold {cond.get('threshold')!r}, skipping")
                continue
            detection_type = r.get("type") or DetectionType.THRESHOLD.value
            if detection_type not in VALID_TYPES:
                logger.warning(f"Unknown detection type in rule {r.get('name')!r}: {detection_type}")
            rules.append(AlertRule(
                name=r.get("name", cond["metric"]),
                detection_type=detection_type,
                condition=AlertCondition(
                    metric=cond["metric"],
                    operator=cond["operator"],
                    threshold=threshold,
                    duration=str(cond.get("duration") or ""),
                ),
                service=r.get("service", ""),
                enabled=r.get("enabled", True),
                channels=list(r.get("channels") or []),
                webhook=r.get("webhook") or "",
            ))
        return rules

    def create_rule(self, name, metric, operator, threshold, service,
                    duration="", webhook="", detection_type=None, enabled=True, channels=None):
        rule = AlertRule(
            name=name,
            detection_type=detection_type or DetectionType.THRESHOLD.value,
            condition=AlertCondition(
                metric=metric, operator=operator, threshold=float(threshold), duration=duration or "",
            ),
            service=service,
            enabled=enabled,
            channels=list(channels or []),
            webhook=webhook or "",
        )
        self.db.create_rule(rule)
        logger.info(f"Created rule {rule.id}: {name}")
        return rule

    def enable(self, rule_id):
        return self.db.set_rule_enabled(rule_id, True)

    def disable(self, rule_id):
        return self.db.set_rule_enabled(rule_id, False)

    def get_enabled_rules(self, service=None):
        return self.db.find_enabled_rules(service)

    def get_rule(self, rule_id):
        return self.db.get_rule(rule_id)

    def get_all_rules(self):
        return self.db.get_all_rules()
