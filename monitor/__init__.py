"""Periodic evaluation loop."""
from monitor.scheduler import EngineScheduler
