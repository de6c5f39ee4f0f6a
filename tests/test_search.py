import sys
import os
import unittest

import numpy as np

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from derby_pilot.core.commands import ActionType, Goal, DriveMode
from derby_pilot.core.navigation.search import SearchStrategy, BALL_SEEK, HOME_SEEK, MAX_SEEK_TURNS

class TestSearchStrategy(unittest.TestCase):
    def setUp(self):
        self.search = SearchStrategy(turn_speed=100.0, rng=np.random.default_rng(7))

    def test_turns_below_threshold(self):
        for turns in range(MAX_SEEK_TURNS):
            command = self.search.next_command(BALL_SEEK, turns)
            self.assertEqual(command.goal, Goal.SEEK_BALL_TURN)
            self.assertEqual(command.mode, DriveMode.AUTOMATIC)
            self.assertEqual(command.actions_of(ActionType.SET_SPEED)[0].value, 100.0)
            self.assertEqual(command.actions_of(ActionType.TURN)[0].value, 67)
            self.assertEqual(command.actions_of(ActionType.DRIVE), ())

    def test_home_turn_angle(self):
        command = self.search.next_command(HOME_SEEK, 0)
        self.assertEqual(command.goal, Goal.SEEK_HOME_TURN)
        self.assertEqual(command.actions_of(ActionType.TURN)[0].value, 60)

    def test_relocates_at_threshold(self):
        command = self.search.next_command(BALL_SEEK, MAX_SEEK_TURNS)
        self.assertEqual(command.goal, Goal.SEEK_BALL_MOVE)
        self.assertEqual(command.actions_of(ActionType.TURN), ())
        self.assertEqual(command.actions_of(ActionType.SET_SPEED)[0].value, 100.0)
        self.assertEqual(len(command.actions_of(ActionType.DRIVE)), 1)

    def test_same_input_same_kind_of_command(self):
        first = self.search.next_command(BALL_SEEK, 7)
        second = self.search.next_command(BALL_SEEK, 7)
        self.assertEqual(first.goal, second.goal)
        self.assertEqual([a.type for a in first.actions], [a.type for a in second.actions])

    def test_ball_relocation_bounds_and_reversal_rate(self):
        distances = [self.search.next_command(BALL_SEEK, MAX_SEEK_TURNS).actions_of(ActionType.DRIVE)[0].value
                     for _ in range(4000)]
        for d in distances:
            self.assertTrue(100 <= abs(d) < 700, d)

        reversed_share = sum(1 for d in distances if d < 0) / len(distances)
        self.assertAlmostEqual(reversed_share, 0.25, delta=0.03)

    def test_home_relocation_never_reverses(self):
        for _ in range(1000):
            command = self.search.next_command(HOME_SEEK, MAX_SEEK_TURNS)
            self.assertEqual(command.goal, Goal.GO_TO_BASE)
            d = command.actions_of(ActionType.DRIVE)[0].value
            self.assertTrue(200 <= d < 900, d)

    def test_seeded_rng_is_reproducible(self):
        a = SearchStrategy(100.0, rng=np.random.default_rng(3))
        b = SearchStrategy(100.0, rng=np.random.default_rng(3))
        for _ in range(20):
            self.assertEqual(a.next_command(BALL_SEEK, 9).to_dict(), b.next_command(BALL_SEEK, 9).to_dict())

if __name__ == "__main__":
    unittest.main()
