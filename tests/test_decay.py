"""Tests for scheduled weight decay."""

from unittest.mock import AsyncMock, patch

import pytest

from hn_digest.learning import DECAY_TASK_NAME, DecayScheduler
from hn_digest.scheduler import Scheduler


class TestDecayScheduler:
    async def test_run_decays_weights(self, store, seed_weights):
        await seed_weights({"python": 2.0, "rust": 0.1})
        decay = DecayScheduler(store, decay_rate=0.25, min_weight=0.1)

        assert await decay.run() is True

        weights = await store.all_weights()
        assert weights["python"] == pytest.approx(1.5)
        assert weights["rust"] == pytest.approx(0.1)

    async def test_run_reports_failure(self, store):
        decay = DecayScheduler(store, decay_rate=0.25, min_weight=0.1)

        with patch.object(store, "decay_all", AsyncMock(side_effect=RuntimeError("db"))):
            assert await decay.run() is False

    async def test_invalid_rate_reported_not_raised(self, store):
        decay = DecayScheduler(store, decay_rate=1.5, min_weight=0.1)

        assert await decay.run() is False

    async def test_schedule_registers_task(self, store):
        scheduler = Scheduler("UTC")
        decay = DecayScheduler(store)

        task = decay.schedule(scheduler, "0 3 * * *")

        assert scheduler.tasks[DECAY_TASK_NAME] is task
        assert task.task_func == decay.run

    async def test_scheduled_run_applies_decay(self, store, seed_weights):
        await seed_weights({"python": 2.0})
        scheduler = Scheduler("UTC")
        DecayScheduler(store, decay_rate=0.5, min_weight=0.1).schedule(scheduler, "0 3 * * *")

        await scheduler.run_task_now(DECAY_TASK_NAME)

        assert (await store.all_weights())["python"] == pytest.approx(1.0)
        assert scheduler.tasks[DECAY_TASK_NAME].run_count == 1
