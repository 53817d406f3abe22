"""Periodic linear decay of tag weights toward a floor."""

from loguru import logger

from ..config import settings
from ..scheduler import ScheduledTask, Scheduler
from ..storage import PreferenceStore

DECAY_TASK_NAME = "decay_tag_weights"


class DecayScheduler:
    """Applies weight decay, either on its own cron or as part of a digest run"""

    def __init__(
        self,
        store: PreferenceStore,
        decay_rate: float | None = None,
        min_weight: float | None = None,
    ):
        self.store = store
        self.decay_rate = settings.tag_decay_rate if decay_rate is None else decay_rate
        self.min_weight = settings.min_tag_weight if min_weight is None else min_weight

    async def run(self) -> bool:
        """Decay all weights once; failures are logged, never raised.

        Returns:
            bool: True if the decay was applied
        """
        try:
            count = await self.store.decay_all(self.decay_rate, self.min_weight)
        except Exception as e:
            logger.error(f"Tag weight decay failed: {e}")
            return False

        logger.info(
            f"Decayed {count} tag weights (rate={self.decay_rate}, floor={self.min_weight})"
        )
        return True

    def schedule(self, scheduler: Scheduler, cron_expression: str) -> ScheduledTask:
        """Register decay as its own recurring task"""
        task = ScheduledTask(
            name=DECAY_TASK_NAME,
            cron_expression=cron_expression,
            task_func=self.run,
        )
        scheduler.add_task(task)
        return task
