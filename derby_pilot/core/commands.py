import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional, List, Any

from .errors import CommandFinalizedError

PROTOCOL_VERSION = "1.0"


class DriveMode(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"
    DEBUG = "debug"


class Goal(str, Enum):
    """Sub-objective that produced a drive command."""
    SEEK_BALL_TURN = "SEEK_BALL_TURN"
    SEEK_BALL_MOVE = "SEEK_BALL_MOVE"
    GO_TO_BALL = "GO_TO_BALL"
    CHECK_GRIP = "CHECK_GRIP"
    GO_TO_BASE = "GO_TO_BASE"
    SEEK_HOME_TURN = "SEEK_HOME_TURN"
    GAME_END = "GAME_END"


class ActionType(str, Enum):
    SET_SPEED = "setSpeed"
    TURN = "turn"
    DRIVE = "drive"
    GRIPPER = "gripper"
    ADD_BALL_COUNT = "addBallCount"
    REQUEST_SENSOR = "sendSensorMessage"


PHYSICAL_ACTIONS = (ActionType.TURN, ActionType.DRIVE, ActionType.GRIPPER)

GRIPPER_OPEN = "open"
GRIPPER_CLOSE = "close"

SENSOR_RATE_ON_DEMAND = "onDemand"
SENSOR_RATE_CONTINUOUS = "continuous"


@dataclass(frozen=True)
class Action:
    type: ActionType
    value: Any = None

    def to_dict(self):
        if self.value is None:
            return {"type": self.type.value}
        return {"type": self.type.value, "value": self.value}


class DriveCommand:
    """
    One decision cycle's output: mode, goal, correlation id and an ordered list of actions.

    Actions are executed by the car in the order they were added. Once finalized
    (handed to the dispatcher / history) the command can no longer be changed.
    """
    def __init__(self):
        self.mode: Optional[DriveMode] = None
        self.goal: Optional[Goal] = None
        self.correlation_id = None
        self.ball_color: Optional[str] = None
        self.sensor_rate: Optional[str] = None
        self._actions: List[Action] = []
        self._finalized = False

    @property
    def actions(self):
        return tuple(self._actions)

    @property
    def finalized(self):
        return self._finalized

    def finalize(self):
        self._finalized = True
        return self

    def _check_mutable(self):
        if self._finalized:
            raise CommandFinalizedError(f"Command {self.correlation_id} ({self.goal}) is already finalized")

    def _add(self, action_type, value=None):
        self._check_mutable()
        self._actions.append(Action(action_type, value))
        return self

    # Header

    def set_mode(self, mode: DriveMode):
        self._check_mutable()
        self.mode = mode
        return self

    def set_mode_manual(self):
        return self.set_mode(DriveMode.MANUAL)

    def set_mode_automatic(self):
        return self.set_mode(DriveMode.AUTOMATIC)

    def set_mode_debug(self):
        return self.set_mode(DriveMode.DEBUG)

    def set_goal(self, goal: Goal):
        self._check_mutable()
        self.goal = goal
        return self

    def set_correlation_id(self, correlation_id):
        self._check_mutable()
        self.correlation_id = correlation_id
        return self

    def set_color(self, color):
        self._check_mutable()
        self.ball_color = color
        return self

    def set_on_demand_sensor_rate(self):
        self._check_mutable()
        self.sensor_rate = SENSOR_RATE_ON_DEMAND
        return self

    def set_continuous_sensor_rate(self):
        self._check_mutable()
        self.sensor_rate = SENSOR_RATE_CONTINUOUS
        return self

    # Actions

    def set_speed(self, speed):
        return self._add(ActionType.SET_SPEED, round(speed, 2))

    def make_turn(self, angle):
        """Turn in place; positive angle turns right, negative turns left."""
        return self._add(ActionType.TURN, int(angle))

    def turn_right(self, angle):
        return self.make_turn(abs(angle))

    def turn_left(self, angle):
        return self.make_turn(-abs(angle))

    def drive(self, distance_mm):
        """Drive straight; negative distance drives backwards."""
        return self._add(ActionType.DRIVE, int(distance_mm))

    def gripper_open(self):
        return self._add(ActionType.GRIPPER, GRIPPER_OPEN)

    def gripper_close(self):
        return self._add(ActionType.GRIPPER, GRIPPER_CLOSE)

    def add_ball_count(self):
        return self._add(ActionType.ADD_BALL_COUNT, 1)

    def request_sensor_message(self):
        return self._add(ActionType.REQUEST_SENSOR)

    # Inspection

    def physical_actions(self):
        return tuple(a for a in self._actions if a.type in PHYSICAL_ACTIONS)

    def actions_of(self, action_type: ActionType):
        return tuple(a for a in self._actions if a.type == action_type)

    def to_dict(self):
        payload = {"version": PROTOCOL_VERSION}
        if self.mode is not None:
            payload["mode"] = self.mode.value
        if self.goal is not None:
            payload["goal"] = self.goal.value
        if self.correlation_id is not None:
            payload["correlationId"] = self.correlation_id
        if self.ball_color is not None:
            payload["ballColor"] = self.ball_color
        if self.sensor_rate is not None:
            payload["sensorRate"] = self.sensor_rate
        payload["actions"] = [a.to_dict() for a in self._actions]
        return payload

    def to_json(self):
        return json.dumps(self.to_dict())

    def __repr__(self):
        return f"DriveCommand(goal={self.goal}, mode={self.mode}, correlation_id={self.correlation_id}, actions={len(self._actions)})"
