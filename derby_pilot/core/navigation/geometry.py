import math
from dataclasses import dataclass

from ..models import BBox

ANGLE_CALIBRATION_MULTIPLIER = 0.75

# Empirical near-field correction for the reference camera and ball.
# The pinhole estimate is unreliable up close; these bands are measured, not derived.
NEAR_FIELD_LIMIT_MM = 95
NEAR_FIELD_DISTANCE_MM = 20
MID_FIELD_LIMIT_MM = 325
MID_FIELD_OFFSET_MM = 35


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def angle_to_target(bbox: BBox, h_field_of_view_deg: float,
                    calibration_multiplier: float = ANGLE_CALIBRATION_MULTIPLIER) -> int:
    """
    Horizontal angle from the image center to the center of the box, in whole degrees.
    Positive means the car should turn right, negative left.
    """
    angle = (bbox.center_x - 0.5) * h_field_of_view_deg * calibration_multiplier
    return _round_half_up(angle)


def apply_near_field_correction(distance_mm: float) -> float:
    if distance_mm < NEAR_FIELD_LIMIT_MM:
        return NEAR_FIELD_DISTANCE_MM
    if distance_mm < MID_FIELD_LIMIT_MM:
        return distance_mm - MID_FIELD_OFFSET_MM
    return distance_mm


def distance_to_target(bbox: BBox, real_object_size_mm: float, focal_length_mm: float,
                       sensor_height_mm: float, min_distance_to_camera_mm: float) -> int:
    """
    Estimated distance to the object in millimeters using the pinhole camera model,
    corrected for the near field.
    """
    relative_size = bbox.largest_side
    distance_mm = (focal_length_mm * real_object_size_mm /
                   (relative_size * sensor_height_mm)) - min_distance_to_camera_mm
    return _round_half_up(apply_near_field_correction(distance_mm))


@dataclass(frozen=True)
class CameraModel:
    """Calibrated front camera of the car."""
    h_field_of_view_deg: float = 62.2
    focal_length_mm: float = 3.04
    sensor_height_mm: float = 2.76
    min_distance_to_camera_mm: float = 20.0
    angle_calibration_multiplier: float = ANGLE_CALIBRATION_MULTIPLIER

    def angle_to(self, bbox: BBox) -> int:
        return angle_to_target(bbox, self.h_field_of_view_deg, self.angle_calibration_multiplier)

    def distance_to(self, bbox: BBox, real_object_size_mm: float) -> int:
        return distance_to_target(bbox, real_object_size_mm, self.focal_length_mm,
                                  self.sensor_height_mm, self.min_distance_to_camera_mm)
