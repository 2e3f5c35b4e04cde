"""Enums for detection types, comparison operators, and event status."""
from enum import Enum


class DetectionType(str, Enum):
    THRESHOLD = "threshold"
    # Reserved strategies, not evaluated yet
    RATE_CHANGE = "rate_change"
    ANOMALY = "anomaly"


class Operator(str, Enum):
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    EQ = "eq"


class EventStatus(str, Enum):
    FIRING = "firing"
    RESOLVED = "resolved"
