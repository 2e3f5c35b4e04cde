"""Engine policy constants."""
from datetime import timedelta

# Scheduler cadence when the config does not override it
DEFAULT_EVAL_INTERVAL_SECONDS = 30

# Lookback used when a rule has no duration or an unparsable one
DEFAULT_WINDOW = timedelta(minutes=5)

# Samples fetched per rule, newest first
SAMPLE_FETCH_LIMIT = 100

WEBHOOK_TIMEOUT_SECONDS = 10
DEFAULT_WEBHOOK_WORKERS = 8
DEFAULT_DRAIN_TIMEOUT_SECONDS = 15

# Scheduler escalates to CRITICAL after this many failed passes in a row
MAX_CONSECUTIVE_FAILURES = 5
