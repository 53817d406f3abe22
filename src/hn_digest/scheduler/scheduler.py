"""Cron-based task scheduler for digest and decay runs."""

from datetime import UTC, datetime
from typing import Any, Callable, Coroutine

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from ..config import parse_digest_time, settings


def daily_cron(digest_time: str) -> str:
    """Convert an HH:MM time into a daily cron expression.

    Raises:
        ValueError: If the time is not valid HH:MM
    """
    hour, minute = parse_digest_time(digest_time)
    return f"{minute} {hour} * * *"


class ScheduledTask:
    """Represents a scheduled task."""

    def __init__(
        self,
        name: str,
        cron_expression: str,
        task_func: Callable[..., Coroutine[Any, Any, Any]],
        args: tuple = (),
        kwargs: dict | None = None,
    ):
        """Initialize scheduled task.

        Args:
            name: Task name for identification
            cron_expression: Cron expression for scheduling
            task_func: Async function to execute
            args: Positional arguments for task function
            kwargs: Keyword arguments for task function
        """
        self.name = name
        self.cron_expression = cron_expression
        self.task_func = task_func
        self.args = args
        self.kwargs = kwargs or {}
        self.last_run: datetime | None = None
        self.next_run: datetime | None = None
        self.run_count: int = 0
        self.error_count: int = 0
        self.last_error: str | None = None


class Scheduler:
    """Holds named cron tasks on an asyncio scheduler.

    Each task keeps a job handle that can be replaced (reschedule) or
    cancelled (remove_task) without touching the other tasks.
    """

    def __init__(self, timezone: str | None = None):
        """Initialize scheduler.

        Args:
            timezone: Timezone cron expressions are evaluated in
        """
        self.timezone = timezone or settings.timezone
        self.scheduler = AsyncIOScheduler(timezone=self.timezone)
        self.tasks: dict[str, ScheduledTask] = {}

    def _trigger(self, cron_expression: str) -> CronTrigger:
        try:
            return CronTrigger.from_crontab(cron_expression, timezone=self.timezone)
        except Exception as e:
            logger.error(f"Invalid cron expression '{cron_expression}': {e}")
            raise ValueError(f"Invalid cron expression: {e}") from e

    def _refresh_next_run(self, task: ScheduledTask) -> None:
        job = self.scheduler.get_job(task.name)
        task.next_run = getattr(job, "next_run_time", None) if job else None

    def add_task(self, task: ScheduledTask) -> None:
        """Add a task to the scheduler, replacing one with the same name.

        Args:
            task: Task to schedule

        Raises:
            ValueError: If the cron expression is invalid
        """
        trigger = self._trigger(task.cron_expression)

        if task.name in self.tasks:
            logger.warning(f"Task {task.name} already exists, replacing")
            self.remove_task(task.name)

        self.scheduler.add_job(
            self._run_task,
            trigger=trigger,
            args=[task],
            id=task.name,
            name=task.name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.tasks[task.name] = task
        self._refresh_next_run(task)

        logger.info(
            f"Scheduled task '{task.name}' with cron '{task.cron_expression}' "
            f"({self.timezone}), next run: {task.next_run}"
        )

    def reschedule(self, task_name: str, cron_expression: str) -> None:
        """Replace the trigger of an existing task.

        Args:
            task_name: Name of task to update
            cron_expression: New cron expression

        Raises:
            ValueError: If the task is unknown or the cron is invalid
        """
        if task_name not in self.tasks:
            raise ValueError(f"Task '{task_name}' not found")

        trigger = self._trigger(cron_expression)
        task = self.tasks[task_name]
        self.scheduler.reschedule_job(task_name, trigger=trigger)
        task.cron_expression = cron_expression
        self._refresh_next_run(task)
        logger.info(f"Rescheduled task '{task_name}' to cron '{cron_expression}'")

    def remove_task(self, task_name: str) -> None:
        """Remove a task from the scheduler.

        Args:
            task_name: Name of task to remove
        """
        if task_name in self.tasks:
            self.scheduler.remove_job(task_name)
            del self.tasks[task_name]
            logger.info(f"Removed task '{task_name}'")

    async def _run_task(self, task: ScheduledTask) -> None:
        """Execute a scheduled task.

        Args:
            task: Task to execute
        """
        logger.info(f"Running scheduled task: {task.name}")
        start_time = datetime.now(UTC)

        try:
            await task.task_func(*task.args, **task.kwargs)

            task.last_run = start_time
            task.run_count += 1
            task.last_error = None
            self._refresh_next_run(task)

            duration = (datetime.now(UTC) - start_time).total_seconds()
            logger.info(f"Task '{task.name}' completed successfully in {duration:.1f}s")

        except Exception as e:
            task.error_count += 1
            task.last_error = str(e)
            logger.exception(f"Task '{task.name}' failed: {e}")

    def start(self) -> None:
        """Start the scheduler."""
        if self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        self.scheduler.start()
        logger.info(f"Scheduler started with {len(self.tasks)} tasks")

        for task in self.tasks.values():
            self._refresh_next_run(task)
            logger.info(f"Task '{task.name}' next run: {task.next_run}")

    def stop(self) -> None:
        """Stop the scheduler."""
        if not self.scheduler.running:
            logger.warning("Scheduler not running")
            return

        self.scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    def get_status(self) -> dict[str, Any]:
        """Get scheduler status and task information."""
        return {
            "running": self.scheduler.running,
            "timezone": str(self.timezone),
            "tasks": {
                name: {
                    "cron": task.cron_expression,
                    "last_run": task.last_run.isoformat() if task.last_run else None,
                    "next_run": task.next_run.isoformat() if task.next_run else None,
                    "run_count": task.run_count,
                    "error_count": task.error_count,
                    "last_error": task.last_error,
                }
                for name, task in self.tasks.items()
            },
        }

    async def run_task_now(self, task_name: str) -> None:
        """Run a specific task immediately.

        Args:
            task_name: Name of task to run
        """
        if task_name not in self.tasks:
            raise ValueError(f"Task '{task_name}' not found")

        task = self.tasks[task_name]
        logger.info(f"Running task '{task_name}' manually")
        await self._run_task(task)
