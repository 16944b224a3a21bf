"""
sim/clock.py - Discrete Timeline

Every LobsterSystem runs its own clock. Time progresses in TIME_UNIT steps.
"""

import logging

from .constants import TIME_UNIT, DEFAULT_START_TIME

logger = logging.getLogger(__name__)


class Clock:
    """
    Owner of the discrete timeline of one system.

    time is start_time (-1) while the system is set up, 0 after the first
    empty iteration, >= 1 after further iterations.
    """

    def __init__(self, start_time: int = DEFAULT_START_TIME):
        self.start_time = start_time
        self.time = start_time

    @property
    def first_iteration(self) -> int:
        """Timestamp after the first iteration, i.e. after initialization finished."""
        return self.start_time + 1

    def set_to(self, time: int) -> None:
        """Reset the clock; only used while initializing a system."""
        logger.debug("clock set to %s", time)
        self.time = time

    def tick(self) -> int:
        self.time += TIME_UNIT
        logger.debug("---- new time is %s ----", self.time)
        return self.time
