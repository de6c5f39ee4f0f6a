from dataclasses import dataclass

import numpy as np

from ..commands import DriveCommand, Goal
from ...logger import get_logger


@dataclass(frozen=True)
class SeekProfile:
    """How to look for one kind of target when it is not in the picture."""
    turn_goal: Goal
    move_goal: Goal
    turn_angle: int
    min_distance_mm: int
    max_distance_mm: int  # exclusive
    reverse_probability: float = 0.0


BALL_SEEK = SeekProfile(
    turn_goal=Goal.SEEK_BALL_TURN,
    move_goal=Goal.SEEK_BALL_MOVE,
    turn_angle=67,
    min_distance_mm=100,
    max_distance_mm=700,
    reverse_probability=0.25,
)

# Relocating towards home keeps the GO_TO_BASE tag, so the car stays committed to returning
HOME_SEEK = SeekProfile(
    turn_goal=Goal.SEEK_HOME_TURN,
    move_goal=Goal.GO_TO_BASE,
    turn_angle=60,
    min_distance_mm=200,
    max_distance_mm=900,
)

MAX_SEEK_TURNS = 5


class SearchStrategy:
    """
    Puts the target back into the picture frame.

    Turning in place re-samples the camera view cheaply. After `max_turns`
    consecutive turns without success the car relocates by a random distance
    to get a different vantage point.
    """
    def __init__(self, turn_speed, max_turns=MAX_SEEK_TURNS, rng=None):
        self.turn_speed = turn_speed
        self.max_turns = max_turns
        self.rng = rng if rng is not None else np.random.default_rng()
        self.logger = get_logger(self.__class__.__name__)

    def next_command(self, profile: SeekProfile, consecutive_turns: int) -> DriveCommand:
        command = DriveCommand()
        command.set_mode_automatic()
        command.set_speed(self.turn_speed)

        if consecutive_turns < self.max_turns:
            self.logger.info("SearchTurn", {"goal": profile.turn_goal.value,
                                            "angle": profile.turn_angle,
                                            "turns_so_far": consecutive_turns})
            command.set_goal(profile.turn_goal)
            command.make_turn(profile.turn_angle)
            return command

        distance = self._relocation_distance(profile)
        self.logger.info("SearchRelocate", {"goal": profile.move_goal.value,
                                            "distance_mm": distance,
                                            "turns_so_far": consecutive_turns})
        command.set_goal(profile.move_goal)
        command.drive(distance)
        return command

    def _relocation_distance(self, profile: SeekProfile) -> int:
        distance = int(self.rng.integers(profile.min_distance_mm, profile.max_distance_mm))
        # On rare occasions back up instead
        if profile.reverse_probability > 0 and self.rng.random() < profile.reverse_probability:
            distance = -distance
        return distance
