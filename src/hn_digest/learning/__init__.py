"""Preference learning from feedback and decay."""

from .decay import DECAY_TASK_NAME, DecayScheduler
from .reactions import ReactionLearner

__all__ = ["DECAY_TASK_NAME", "DecayScheduler", "ReactionLearner"]
