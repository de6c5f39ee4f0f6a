from dataclasses import dataclass, field, replace
from typing import Optional, Tuple, Dict, Any

from .errors import MalformedObservation


@dataclass(frozen=True)
class BBox:
    """Bounding box as fractions of the image size, origin top-left."""
    x: float
    y: float
    w: float
    h: float

    @property
    def center_x(self) -> float:
        return self.x + self.w / 2.0

    @property
    def largest_side(self) -> float:
        # Balls may be partially covered, so the larger side is the better size estimate
        return max(self.w, self.h)


@dataclass(frozen=True)
class Detection:
    """A single labeled object found by the inference service."""
    label: str
    score: float
    bbox: BBox

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Detection":
        return cls(
            label=str(raw["label"]),
            score=float(raw["score"]),
            bbox=BBox(float(raw["x"]), float(raw["y"]), float(raw["w"]), float(raw["h"])),
        )


@dataclass(frozen=True)
class CarState:
    balls_collected: int
    color: str
    obstacle_found: bool = False
    battery_left: Optional[float] = None


@dataclass(frozen=True)
class SensorObservation:
    """One telemetry snapshot from the car, plus the detections found in its image."""
    car_id: Optional[str]
    timestamp_ms: int
    car_state: CarState
    image_path: Optional[str] = None
    laser_distance_mm: Optional[float] = None
    detections: Tuple[Detection, ...] = field(default_factory=tuple)

    def with_detections(self, detections) -> "SensorObservation":
        return replace(self, detections=tuple(detections))

    @classmethod
    def from_message(cls, message: Dict[str, Any]) -> "SensorObservation":
        """
        Parse the sensor message sent by the car.

        Example:
            {"carId": 1, "timestampMs": 1519671071945,
             "carState": {"ballsCollected": 0, "color": "red", "batteryLeft": 99},
             "sensors": {"frontLaserDistanceMm": 90,
                         "frontCameraImagePath": "gs://robot-derby-camera-1/images/image0.jpg"}}

        Raises:
            MalformedObservation: if the timestamp or the required car state fields are missing.
        """
        if not isinstance(message, dict):
            raise MalformedObservation(f"Sensor message must be an object, got {type(message).__name__}")

        timestamp_ms = message.get("timestampMs")
        if timestamp_ms is None:
            raise MalformedObservation("timestampMs is missing")

        raw_state = message.get("carState")
        if not isinstance(raw_state, dict):
            raise MalformedObservation("carState is missing")
        if raw_state.get("ballsCollected") is None:
            raise MalformedObservation("carState.ballsCollected is missing")
        if not raw_state.get("color"):
            raise MalformedObservation("carState.color is missing")

        sensors = message.get("sensors") or {}
        try:
            car_state = CarState(
                balls_collected=int(raw_state["ballsCollected"]),
                color=str(raw_state["color"]),
                obstacle_found=bool(raw_state.get("obstacleFound", False)),
                battery_left=raw_state.get("batteryLeft"),
            )
            detections = tuple(Detection.from_dict(d) for d in message.get("detections", []))
            return cls(
                car_id=message.get("carId"),
                timestamp_ms=int(timestamp_ms),
                car_state=car_state,
                image_path=sensors.get("frontCameraImagePath"),
                laser_distance_mm=sensors.get("frontLaserDistanceMm"),
                detections=detections,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedObservation(f"Invalid sensor message: {e}") from e
