import collections
import threading

from ..core.commands import DriveCommand, DriveMode
from ..core.errors import MalformedObservation, PerceptionUnavailable
from ..core.history import CommandHistory
from ..core.navigation.engine import NavigationEngine
from ..io.ingestion import ObservationValidator, now_ms
from ..io.sensor_receiver import SensorReceiver
from ..logger import get_logger

MAX_INBOUND_HISTORY = 60 * 60

MANUAL_ACTIONS = ("forward", "backward", "turn_left", "turn_right",
                  "gripper_open", "gripper_close", "request_sensor")

class DrivingOrchestrator:
    """
    Runs the sensor -> perception -> decision -> dispatch loop for one car.

    Key Responsibilities:
    1.  **Ingestion**: Validates every sensor message before it reaches the engine.
    2.  **Mode Gating**: MANUAL skips decisions, DEBUG holds the decided command
        for the operator, AUTOMATIC publishes it right away.
    3.  **Bookkeeping**: Keeps the inbound message log and the run statistics.
    """
    def __init__(self, engine: NavigationEngine, perception, dispatcher, validator=None,
                 history: CommandHistory = None, sensor_uri="tcp://localhost:5570",
                 ball_color="red", receiver_factory=SensorReceiver):
        self.engine = engine
        self.perception = perception
        self.dispatcher = dispatcher
        self.validator = validator or ObservationValidator()
        self.history = history if history is not None else dispatcher.history
        self.sensor_uri = sensor_uri
        self.receiver_factory = receiver_factory
        self.logger = get_logger(self.__class__.__name__)

        # State
        self.mode = DriveMode.MANUAL
        self.ball_color = ball_color
        self.pending_command = None
        self.receiver = None
        self.inbound_history = collections.deque(maxlen=MAX_INBOUND_HISTORY)

        # Stats
        self.messages_received = 0
        self.decision_failures = collections.Counter()

        # Sensor callbacks and operator commands must not interleave on the history
        self.lock = threading.RLock()

    # Listener

    @property
    def listening(self):
        return self.receiver is not None and self.receiver.is_alive()

    def start_listener(self):
        if self.listening:
            self.logger.info("ListenerAlreadyRunning")
            return
        self.receiver = self.receiver_factory(self.sensor_uri)
        self.receiver.start_receiving(self.on_sensor_message)

    def stop_listener(self):
        if self.receiver is None:
            self.logger.info("ListenerNotRunning")
            return
        self.receiver.stop()
        self.receiver = None

    # Sensor loop

    def on_sensor_message(self, message):
        """
        Callback from SensorReceiver. Executes one decision cycle.

        Returns:
            DriveCommand or None if no command was produced.
        """
        with self.lock:
            self.messages_received += 1

            observation = self.validator.admit(message)
            if observation is None:
                return None
            self.inbound_history.append(observation)

            if self.mode == DriveMode.MANUAL:
                return None

            try:
                # 1. Perception (blocking)
                detections = self.perception.recognize(observation)
                # 2. Decision
                command = self.engine.decide(observation.with_detections(detections), self.history)
            except (PerceptionUnavailable, MalformedObservation) as e:
                self.decision_failures[type(e).__name__] += 1
                self.logger.error("DecisionFailed", {
                    "kind": type(e).__name__,
                    "error": str(e),
                    "correlation_id": observation.timestamp_ms,
                })
                return None

            # 3. Dispatch
            if self.mode == DriveMode.DEBUG:
                self.pending_command = command
                self.logger.info("CommandHeldForDebug", {"correlation_id": command.correlation_id})
            else:
                self.dispatcher.publish(command)
            return command

    # Operator commands

    def start_self_driving(self):
        with self.lock:
            self.start_listener()
            self.mode = DriveMode.AUTOMATIC
            command = DriveCommand()
            command.set_mode_automatic()
            command.set_on_demand_sensor_rate()
            # Drive with a closed gripper so random balls do not get into the grip
            command.gripper_close()
            command.request_sensor_message()
            self.logger.info("ModeChanged", {"mode": self.mode.value})
            return self.dispatcher.publish(command)

    def start_manual(self):
        with self.lock:
            self.mode = DriveMode.MANUAL
            command = DriveCommand()
            command.set_mode_manual()
            command.request_sensor_message()
            self.logger.info("ModeChanged", {"mode": self.mode.value})
            return self.dispatcher.publish(command)

    def start_debug(self):
        with self.lock:
            self.start_listener()
            self.mode = DriveMode.DEBUG
            command = DriveCommand()
            command.set_mode_debug()
            command.set_on_demand_sensor_rate()
            self.logger.info("ModeChanged", {"mode": self.mode.value})
            return self.dispatcher.publish(command)

    def debug_step(self):
        """Send the command held in debug mode (or an empty one) and let the car report back."""
        with self.lock:
            command = self.pending_command if self.pending_command is not None else DriveCommand()
            self.pending_command = None
            command.set_mode_debug()
            # The car sends a sensor message after acting on the other actions
            command.set_on_demand_sensor_rate()
            return self.dispatcher.publish(command)

    def discard_pending(self):
        """Drop the held debug command and wait for the next sensor message instead."""
        with self.lock:
            command = self.pending_command
            self.pending_command = None
            if command is not None:
                self.logger.info("PendingCommandDiscarded", {"correlation_id": command.correlation_id})
            return command

    def recent_inbound(self, count=10):
        """Newest `count` admitted observations, oldest first."""
        with self.lock:
            observations = list(self.inbound_history)
        return observations[-count:] if count > 0 else []

    def recent_outbound(self, count=10):
        """Newest `count` published commands, oldest first."""
        with self.lock:
            commands = list(self.history)
        return commands[-count:] if count > 0 else []

    def request_sensor_message(self):
        with self.lock:
            command = DriveCommand()
            command.set_mode_debug()
            command.request_sensor_message()
            return self.dispatcher.publish(command)

    def change_color(self, color):
        with self.lock:
            self.ball_color = color.lower()
            command = DriveCommand()
            command.set_color(self.ball_color)
            self.logger.info("BallColorChanged", {"color": self.ball_color})
            return self.dispatcher.publish(command)

    def manual_command(self, action, value=None, speed=None):
        """
        Publish one manual driving step.

        Args:
            action (str): one of MANUAL_ACTIONS.
            value: distance in mm for forward/backward, angle in degrees for turns.
            speed (float): optional speed to set before moving.
        """
        if action not in MANUAL_ACTIONS:
            raise ValueError(f"Unknown manual action '{action}'")

        with self.lock:
            command = DriveCommand()
            command.set_mode_manual()
            if speed is not None:
                command.set_speed(speed)

            if action == "forward":
                command.drive(abs(value))
            elif action == "backward":
                command.drive(-abs(value))
            elif action == "turn_left":
                command.turn_left(value)
            elif action == "turn_right":
                command.turn_right(value)
            elif action == "gripper_open":
                command.gripper_open()
            elif action == "gripper_close":
                command.gripper_close()
            command.request_sensor_message()
            return self.dispatcher.publish(command)

    def reset(self):
        """Reset statistics and history; messages older than now are ignored."""
        with self.lock:
            self.messages_received = 0
            self.decision_failures.clear()
            self.pending_command = None
            self.inbound_history.clear()
            self.history.clear()
            self.validator.reset(now_ms())
            self.dispatcher.reset()
            self.logger.info("StatisticsReset")

    def stats(self):
        return {
            "mode": self.mode.value,
            "ball_color": self.ball_color,
            "listening": self.listening,
            "messages_received": self.messages_received,
            "messages_sent": self.dispatcher.messages_sent,
            "publish_errors": self.dispatcher.publish_errors,
            "rejected_format": self.validator.rejected_format,
            "rejected_out_of_order": self.validator.rejected_out_of_order,
            "decision_failures": dict(self.decision_failures),
            "latest_timestamp_ms": self.validator.max_timestamp_ms,
            "commands_in_history": len(self.history),
            "messages_in_history": len(self.inbound_history),
            "pending_command": self.pending_command.to_dict() if self.pending_command else None,
        }

    def stop(self):
        self.stop_listener()
        self.perception.close()
        self.dispatcher.close()
