"""Scheduler module."""

from .scheduler import Job, ScheduledJob, Scheduler
from .triggers import DailyTrigger, ITrigger, WeeklyTrigger

__all__ = ["Job", "ScheduledJob", "Scheduler", "DailyTrigger", "ITrigger", "WeeklyTrigger"]
