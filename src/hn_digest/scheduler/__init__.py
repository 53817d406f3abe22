"""Task scheduler for digest delivery and weight decay."""

from .scheduler import Scheduler, ScheduledTask, daily_cron

__all__ = ["Scheduler", "ScheduledTask", "daily_cron"]
