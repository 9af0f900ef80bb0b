"""Bounded random selection of eligible volunteers for outreach."""

import random
import secrets
from typing import Iterable, List, Optional

from .errors import PreconditionError
from .logger import get_logger
from .records import VolunteerRecord
from .task import Task, TaskCatalog

logger = get_logger()


class VolunteerSampler:
    """
    Picks at most `max_count` eligible volunteers uniformly at random.

    The random source defaults to secrets.SystemRandom so outreach lists
    cannot be predicted; tests inject a seeded random.Random instead.
    """

    def __init__(self, catalog: TaskCatalog, rng: Optional[random.Random] = None):
        self.catalog = catalog
        self.rng = rng if rng is not None else secrets.SystemRandom()

    def eligible(self, task: Task, pool: Iterable[VolunteerRecord]) -> List[VolunteerRecord]:
        return [volunteer for volunteer in pool if self.catalog.matches(task, volunteer)]

    def sample(self, task: Task, pool: Iterable[VolunteerRecord], max_count: int) -> List[VolunteerRecord]:
        if max_count < 0:
            raise PreconditionError(f"max_count must be >= 0, got {max_count}")
        candidates = self.eligible(task, pool)
        k = min(max_count, len(candidates))
        logger.debug("Sampling volunteers", task=task.identifier, eligible=len(candidates), selected=k)
        return self.rng.sample(candidates, k)
