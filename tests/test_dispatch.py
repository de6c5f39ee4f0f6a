import unittest
from unittest.mock import MagicMock
import sys
import os
import json

import zmq

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from derby_pilot.core.commands import DriveCommand, Goal
from derby_pilot.core.history import CommandHistory
from derby_pilot.io.dispatch import CommandDispatcher

class TestCommandDispatcher(unittest.TestCase):
    def setUp(self):
        self.context = MagicMock()
        self.socket = self.context.socket.return_value
        self.history = CommandHistory()
        self.dispatcher = CommandDispatcher(self.history, command_uri="tcp://*:5571", context=self.context)

    def test_binds_pub_socket(self):
        self.context.socket.assert_called_once_with(zmq.PUB)
        self.socket.bind.assert_called_once_with("tcp://*:5571")

    def test_publish_sends_and_records(self):
        command = DriveCommand()
        command.set_goal(Goal.GO_TO_BALL)
        command.drive(100)

        self.assertTrue(self.dispatcher.publish(command))

        topic, payload = self.socket.send_multipart.call_args[0][0]
        self.assertEqual(topic, b"commands")
        self.assertEqual(json.loads(payload)["goal"], "GO_TO_BALL")
        self.assertTrue(command.finalized)
        self.assertIs(self.history.latest(), command)
        self.assertEqual(self.dispatcher.messages_sent, 1)

    def test_failed_publish_is_counted_not_recorded(self):
        self.socket.send_multipart.side_effect = zmq.ZMQError(zmq.EAGAIN, "send failed")

        self.assertFalse(self.dispatcher.publish(DriveCommand()))
        self.assertEqual(self.dispatcher.publish_errors, 1)
        self.assertEqual(self.dispatcher.messages_sent, 0)
        self.assertEqual(len(self.history), 0)

    def test_nothing_to_publish(self):
        self.assertFalse(self.dispatcher.publish(None))
        self.socket.send_multipart.assert_not_called()

    def test_reset(self):
        self.dispatcher.publish(DriveCommand())
        self.dispatcher.reset()
        self.assertEqual(self.dispatcher.messages_sent, 0)
        self.assertEqual(self.dispatcher.publish_errors, 0)

if __name__ == '__main__':
    unittest.main()
