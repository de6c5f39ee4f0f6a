from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from ..commands import DriveCommand, Goal
from ..errors import MalformedObservation
from ..history import CommandHistory
from ..models import Detection, SensorObservation
from .geometry import CameraModel
from .search import SearchStrategy, SeekProfile, BALL_SEEK, HOME_SEEK
from ...logger import get_logger

# Low-confidence balls whose top edge is this close to the top of the frame are
# treated as false positives; balls do not fly.
HIGH_BALL_TOP_BOUND = 0.2
HIGH_BALL_SCORE = 0.5

# Ball capture
BALL_CAPTURE_ANGLE_DEG = 10
BALL_CAPTURE_DISTANCE_MM = 70
SLOW_APPROACH_ZONE_MM = 250
SLOW_APPROACH_SPEED_FRACTION = 0.05
# Drive a little past the estimate so the ball ends up in the gripper
BALL_EXTRA_DISTANCE_MM = 30
GRIP_CHECK_REVERSE_MM = 250

# Ball release at home
BALL_RELEASE_DISTANCE_MM = 850
HOME_EXTRA_DISTANCE_MM = 100
RELEASE_BACKOFF_SLOW_MM = 100
RELEASE_BACKOFF_FAST_MM = 1000
RELEASE_TURN_DEG = 90


@dataclass(frozen=True)
class GameSettings:
    max_speed: float = 1000.0
    balls_needed: int = 3
    ball_label_suffix: str = "_ball"
    home_label_suffix: str = "_home"
    ball_size_mm: float = 40.0
    home_size_mm: float = 250.0
    camera: CameraModel = field(default_factory=CameraModel)

    @property
    def turn_speed(self):
        return self.max_speed / 10


class Objective(str, Enum):
    SEEK_BALL = "seek_ball"
    RETURN_HOME = "return_home"
    GAME_OVER = "game_over"


@dataclass(frozen=True)
class NavigationState:
    """
    Explicit control state for one decision, resolved from the command history.

    The history stays an audit log; everything the engine needs from it is read
    here once, so the decision logic below works off named fields.
    """
    objective: Objective
    last_goal: Optional[Goal]
    ball_seek_turns: int
    home_seek_turns: int

    @classmethod
    def resolve(cls, observation: SensorObservation, history: CommandHistory, balls_needed: int):
        home_seek_turns = history.count_consecutive(Goal.SEEK_HOME_TURN)
        # Once home seeking started, stay committed to it instead of oscillating back to balls
        if history.count_consecutive(Goal.GO_TO_BASE) > 0 or home_seek_turns > 0:
            objective = Objective.RETURN_HOME
        elif observation.car_state.balls_collected < balls_needed:
            objective = Objective.SEEK_BALL
        else:
            objective = Objective.GAME_OVER

        return cls(
            objective=objective,
            last_goal=history.last_goal(),
            ball_seek_turns=history.count_consecutive(Goal.SEEK_BALL_TURN),
            home_seek_turns=home_seek_turns,
        )

    def seek_turns(self, profile: SeekProfile) -> int:
        if profile.turn_goal == Goal.SEEK_HOME_TURN:
            return self.home_seek_turns
        return self.ball_seek_turns


def is_ball_label(label: str, ball_label_suffix: str) -> bool:
    return ball_label_suffix.lower() in label.lower()


def find_best_detection(object_label: str, detections: Sequence[Detection],
                        ball_label_suffix: str = "_ball") -> Optional[Detection]:
    """
    Find the detection most likely to be the nearest object of the given label.

    Objects of one label are the same size, so the biggest box is the nearest;
    the size is weighted by the confidence score. Detections are scanned from
    the last one to the first and ties keep the first one met.
    """
    found_size = 0.0
    nearest = None
    wanted = object_label.lower()

    for detection in reversed(detections):
        if (is_ball_label(detection.label, ball_label_suffix)
                and detection.score < HIGH_BALL_SCORE
                and detection.bbox.y < HIGH_BALL_TOP_BOUND):
            continue

        if wanted in detection.label.lower():
            size = detection.bbox.largest_side * detection.score
            if found_size < size:
                found_size = size
                nearest = detection

    return nearest


class NavigationEngine:
    """
    Turns one sensor observation into one drive command.

    Inputs: observation (with the detections of its camera frame), command history (read only).
    Output: DriveCommand, not yet finalized; the dispatcher appends it to history once sent.
    """
    def __init__(self, settings: GameSettings = None, search: SearchStrategy = None):
        self.settings = settings or GameSettings()
        self.search = search or SearchStrategy(turn_speed=self.settings.turn_speed)
        self.logger = get_logger(self.__class__.__name__)

        self._handlers = {
            Objective.SEEK_BALL: self._navigate_to_ball,
            Objective.RETURN_HOME: self._navigate_to_home,
            Objective.GAME_OVER: self._game_over,
        }

    def decide(self, observation: SensorObservation, history: CommandHistory) -> DriveCommand:
        self._validate(observation)

        state = NavigationState.resolve(observation, history, self.settings.balls_needed)
        self.logger.info("ObjectiveSelected", {
            "correlation_id": observation.timestamp_ms,
            "objective": state.objective.value,
            "balls_collected": observation.car_state.balls_collected,
            "last_goal": state.last_goal.value if state.last_goal else None,
        })

        command = self._handlers[state.objective](observation, state)

        command.set_correlation_id(observation.timestamp_ms)
        # Ask the car for a new sensor reading once it is done with the actions
        command.request_sensor_message()

        self.logger.info("DriveCommandDecided", {
            "correlation_id": command.correlation_id,
            "goal": command.goal.value if command.goal else None,
            "actions": [a.to_dict() for a in command.actions],
        })
        return command

    def _validate(self, observation: SensorObservation):
        if observation is None:
            raise MalformedObservation("No observation")
        if observation.timestamp_ms is None:
            raise MalformedObservation("Observation has no timestamp")
        car_state = observation.car_state
        if car_state is None:
            raise MalformedObservation("Observation has no car state")
        if car_state.balls_collected is None or not car_state.color:
            raise MalformedObservation("Car state is missing ballsCollected or color")

    def _find_target(self, observation: SensorObservation, label_suffix: str) -> Optional[Detection]:
        object_label = observation.car_state.color + label_suffix
        detection = find_best_detection(object_label, observation.detections,
                                        self.settings.ball_label_suffix)
        if detection is None:
            self.logger.info("TargetNotFound", {"label": object_label,
                                                "detections": len(observation.detections)})
        else:
            self.logger.debug("TargetSelected", {"label": detection.label, "score": detection.score,
                                                 "x": detection.bbox.x, "y": detection.bbox.y,
                                                 "w": detection.bbox.w, "h": detection.bbox.h})
        return detection

    def _fall_back_to_search(self, profile: SeekProfile, state: NavigationState) -> DriveCommand:
        """Shared transition into searching, used when the target is missing or blocked."""
        return self.search.next_command(profile, state.seek_turns(profile))

    # Objectives

    def _navigate_to_ball(self, observation: SensorObservation, state: NavigationState) -> DriveCommand:
        detection = self._find_target(observation, self.settings.ball_label_suffix)
        if detection is None:
            return self._fall_back_to_search(BALL_SEEK, state)

        camera = self.settings.camera
        max_speed = self.settings.max_speed
        angle = camera.angle_to(detection.bbox)
        distance = camera.distance_to(detection.bbox, self.settings.ball_size_mm)

        command = DriveCommand()
        command.set_mode_automatic()

        if abs(angle) <= BALL_CAPTURE_ANGLE_DEG and distance <= BALL_CAPTURE_DISTANCE_MM:
            # Second time here right after closing the gripper: the ball really is in the grip
            if state.last_goal == Goal.CHECK_GRIP:
                self.logger.info("GripVerified", {"angle": angle, "distance_mm": distance})
                command.set_goal(Goal.GO_TO_BASE)
                return command

            self.logger.info("CaptureInitiated", {"angle": angle, "distance_mm": distance})
            command.gripper_close()
            command.set_goal(Goal.CHECK_GRIP)
            # Pull back so the next picture tells whether the ball stayed in the grip
            command.set_speed(max_speed / 2)
            command.drive(-GRIP_CHECK_REVERSE_MM)
            return command

        if distance < SLOW_APPROACH_ZONE_MM:
            self.logger.info("ApproachSlow", {"angle": angle, "distance_mm": distance})
            command.set_goal(Goal.GO_TO_BALL)
            command.make_turn(angle)
            command.gripper_open()
            # Slow down so the ball is not kicked away
            command.set_speed(max_speed * SLOW_APPROACH_SPEED_FRACTION)
            command.drive(distance + BALL_EXTRA_DISTANCE_MM)
            return command

        if observation.car_state.obstacle_found:
            self.logger.info("ObstacleFallback", {"objective": state.objective.value,
                                                  "distance_mm": distance})
            return self._fall_back_to_search(BALL_SEEK, state)

        self.logger.info("ApproachFar", {"angle": angle, "distance_mm": distance})
        command.set_goal(Goal.GO_TO_BALL)
        command.set_speed(max_speed)
        command.make_turn(angle)
        # Stop short of the slow zone and re-evaluate from a fresh picture
        command.drive(distance - SLOW_APPROACH_ZONE_MM // 2)
        return command

    def _navigate_to_home(self, observation: SensorObservation, state: NavigationState) -> DriveCommand:
        detection = self._find_target(observation, self.settings.home_label_suffix)
        if detection is None:
            return self._fall_back_to_search(HOME_SEEK, state)

        camera = self.settings.camera
        max_speed = self.settings.max_speed
        angle = camera.angle_to(detection.bbox)
        distance = camera.distance_to(detection.bbox, self.settings.home_size_mm)

        command = DriveCommand()
        command.set_mode_automatic()

        if distance < BALL_RELEASE_DISTANCE_MM:
            self.logger.info("BallReleased", {"angle": angle, "distance_mm": distance})
            command.add_ball_count()
            command.gripper_open()
            command.set_speed(max_speed / 10)
            command.drive(-RELEASE_BACKOFF_SLOW_MM)
            command.set_speed(max_speed)
            command.drive(-RELEASE_BACKOFF_FAST_MM)
            command.set_speed(self.settings.turn_speed)
            command.turn_right(RELEASE_TURN_DEG)
            # Travel with a closed gripper so stray balls are not scooped up
            command.gripper_close()
            command.set_goal(Goal.GO_TO_BALL)
            return command

        if observation.car_state.obstacle_found:
            self.logger.info("ObstacleFallback", {"objective": state.objective.value,
                                                  "distance_mm": distance})
            return self._fall_back_to_search(HOME_SEEK, state)

        self.logger.info("HomeApproach", {"angle": angle, "distance_mm": distance})
        command.set_goal(Goal.GO_TO_BASE)
        command.set_speed(self.settings.turn_speed)
        command.make_turn(angle)
        command.set_speed(max_speed)
        command.drive(distance - BALL_RELEASE_DISTANCE_MM + HOME_EXTRA_DISTANCE_MM)
        return command

    def _game_over(self, observation: SensorObservation, state: NavigationState) -> DriveCommand:
        self.logger.info("GameOver", {"balls_collected": observation.car_state.balls_collected})
        command = DriveCommand()
        command.set_goal(Goal.GAME_END)
        return command
