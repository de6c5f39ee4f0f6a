import unittest
from unittest.mock import MagicMock, patch
from types import SimpleNamespace
import copy
import importlib.util
import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from derby_pilot import main as derby_pilot_main
from derby_pilot.command_handler import CommandHandler
from derby_pilot.config import DEFAULT_KEYBOARD_CONFIG
from derby_pilot.core.navigation.engine import GameSettings
from derby_pilot.keyboard_drive import KeyboardDriveController

def make_config():
    return SimpleNamespace(keyboard_config=copy.deepcopy(DEFAULT_KEYBOARD_CONFIG), game=GameSettings())

@patch('builtins.print')
class TestCommandHandler(unittest.TestCase):
    def setUp(self):
        self.orchestrator = MagicMock()
        self.orchestrator.pending_command = None
        self.handler = CommandHandler(self.orchestrator, make_config())

    def test_mode_commands(self, _print):
        self.handler.handle_command("a")
        self.handler.handle_command("m")
        self.handler.handle_command("d")
        self.orchestrator.start_self_driving.assert_called_once()
        self.orchestrator.start_manual.assert_called_once()
        self.orchestrator.start_debug.assert_called_once()

    def test_debug_step_and_sensor_request(self, _print):
        self.handler.handle_command("n")
        self.handler.handle_command("s")
        self.orchestrator.debug_step.assert_called_once()
        self.orchestrator.request_sensor_message.assert_called_once()

    def test_change_color(self, _print):
        self.handler.handle_command("c Blue")
        self.orchestrator.change_color.assert_called_once_with("Blue")

        self.handler.handle_command("c purple")
        self.handler.handle_command("c")
        self.assertEqual(self.orchestrator.change_color.call_count, 1)

    def test_listener_and_stats(self, _print):
        self.handler.handle_command("start")
        self.orchestrator.reset.assert_called_once()
        self.orchestrator.start_listener.assert_called_once()

        self.handler.handle_command("stop")
        self.orchestrator.stop_listener.assert_called_once()

    def test_discard_held_command(self, mock_print):
        self.orchestrator.discard_pending.return_value = None
        self.handler.handle_command("x")
        self.orchestrator.discard_pending.assert_called_once()
        self.orchestrator.debug_step.assert_not_called()
        mock_print.assert_called_once_with("No held debug command to discard.")

    @patch('derby_pilot.cli.print_outbound_history')
    @patch('derby_pilot.cli.print_inbound_history')
    def test_message_history(self, print_inbound, print_outbound, _print):
        self.orchestrator.stats.return_value = {"messages_in_history": 7, "commands_in_history": 4}
        self.orchestrator.recent_inbound.return_value = ["obs"]
        self.orchestrator.recent_outbound.return_value = ["cmd"]

        self.handler.handle_command("in 5")
        self.orchestrator.recent_inbound.assert_called_once_with(5)
        print_inbound.assert_called_once_with(["obs"], 7)

        self.handler.handle_command("out")
        self.orchestrator.recent_outbound.assert_called_once_with(10)
        print_outbound.assert_called_once_with(["cmd"], 4)

    def test_message_history_needs_positive_count(self, _print):
        self.handler.handle_command("in 0")
        self.handler.handle_command("in abc")
        self.handler.handle_command("out -3")
        self.orchestrator.recent_inbound.assert_not_called()
        self.orchestrator.recent_outbound.assert_not_called()

    def test_unknown_and_empty(self, mock_print):
        self.handler.handle_command("   ")
        self.handler.handle_command("fly")
        mock_print.assert_called_once_with("Command not recognised.")

    def test_cleanup(self, _print):
        self.handler.cleanup()
        self.orchestrator.stop.assert_called_once()

class TestKeyboardDriveController(unittest.TestCase):
    def setUp(self):
        self.orchestrator = MagicMock()
        self.controller = KeyboardDriveController(self.orchestrator, make_config())

    def test_drive_keys_use_steps_and_speed(self):
        self.controller.handle_key("up")
        self.orchestrator.manual_command.assert_called_with("forward", 100, speed=500.0)

        self.controller.handle_key("left")
        self.orchestrator.manual_command.assert_called_with("turn_left", 15, speed=500.0)

    def test_gripper_keys(self):
        self.controller.handle_key("c")
        self.orchestrator.manual_command.assert_called_with("gripper_close")

    def test_speed_keys_are_clamped(self):
        for _ in range(10):
            self.controller.handle_key("+")
        self.assertEqual(self.controller.speed_multiplier, 1.0)

        for _ in range(20):
            self.controller.handle_key("-")
        self.assertEqual(self.controller.speed_multiplier, 0.1)
        self.orchestrator.manual_command.assert_not_called()

    def test_unmapped_key(self):
        self.controller.handle_key("x")
        self.orchestrator.manual_command.assert_not_called()
        self.assertIsNone(self.controller.last_action)

class TestLauncherScript(unittest.TestCase):
    def test_runs_main_without_touching_sys_path(self):
        path = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'derby_pilot.py'))
        spec = importlib.util.spec_from_file_location("derby_pilot_launcher", path)
        launcher = importlib.util.module_from_spec(spec)
        path_before = list(sys.path)

        spec.loader.exec_module(launcher)

        self.assertEqual(sys.path, path_before)
        self.assertIs(launcher.main, derby_pilot_main.main)

if __name__ == '__main__':
    unittest.main()
