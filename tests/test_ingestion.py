import sys
import os
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from derby_pilot.core.errors import MalformedObservation
from derby_pilot.core.models import SensorObservation
from derby_pilot.io.ingestion import ObservationValidator

def sensor_message(timestamp_ms, balls=0, color="red", **extra):
    message = {
        "carId": 1,
        "timestampMs": timestamp_ms,
        "carState": {"ballsCollected": balls, "color": color, "batteryLeft": 99},
        "sensors": {"frontLaserDistanceMm": 90,
                    "frontCameraImagePath": "gs://robot-derby-camera-1/images/image0.jpg"},
    }
    message.update(extra)
    return message

class TestSensorObservationParsing(unittest.TestCase):
    def test_parses_car_message(self):
        obs = SensorObservation.from_message(sensor_message(1519671071945, balls=2, color="blue"))

        self.assertEqual(obs.timestamp_ms, 1519671071945)
        self.assertEqual(obs.car_state.balls_collected, 2)
        self.assertEqual(obs.car_state.color, "blue")
        self.assertFalse(obs.car_state.obstacle_found)
        self.assertEqual(obs.laser_distance_mm, 90)
        self.assertEqual(obs.image_path, "gs://robot-derby-camera-1/images/image0.jpg")
        self.assertEqual(obs.detections, ())

    def test_inline_detections(self):
        message = sensor_message(1, detections=[{"label": "red_ball", "score": 0.9,
                                                 "x": 0.45, "y": 0.3, "w": 0.1, "h": 0.1}])
        obs = SensorObservation.from_message(message)
        self.assertEqual(len(obs.detections), 1)
        self.assertEqual(obs.detections[0].bbox.w, 0.1)

    def test_zero_timestamp_is_present(self):
        obs = SensorObservation.from_message(sensor_message(0))
        self.assertEqual(obs.timestamp_ms, 0)

    def test_missing_fields(self):
        broken = [
            "not a dict",
            {"carState": {"ballsCollected": 0, "color": "red"}},
            {"timestampMs": 1},
            {"timestampMs": 1, "carState": {"color": "red"}},
            {"timestampMs": 1, "carState": {"ballsCollected": 0}},
            {"timestampMs": 1, "carState": {"ballsCollected": "many", "color": "red"}},
        ]
        for message in broken:
            with self.assertRaises(MalformedObservation):
                SensorObservation.from_message(message)


class TestObservationValidator(unittest.TestCase):
    def setUp(self):
        self.validator = ObservationValidator(max_message_age_sec=60)

    def test_admits_fresh_increasing_messages(self):
        self.assertIsNotNone(self.validator.admit(sensor_message(100000), current_time_ms=100500))
        self.assertIsNotNone(self.validator.admit(sensor_message(100001), current_time_ms=100500))
        self.assertEqual(self.validator.max_timestamp_ms, 100001)

    def test_rejects_repeated_and_older(self):
        self.validator.admit(sensor_message(100000), current_time_ms=100500)

        self.assertIsNone(self.validator.admit(sensor_message(100000), current_time_ms=100500))
        self.assertIsNone(self.validator.admit(sensor_message(99999), current_time_ms=100500))
        self.assertEqual(self.validator.rejected_out_of_order, 2)
        self.assertEqual(self.validator.rejected_format, 0)

    def test_rejects_stale_but_remembers_timestamp(self):
        self.assertIsNone(self.validator.admit(sensor_message(200000), current_time_ms=261000))
        self.assertEqual(self.validator.rejected_out_of_order, 1)
        self.assertEqual(self.validator.max_timestamp_ms, 200000)

    def test_zero_timestamp_is_out_of_order_not_malformed(self):
        self.assertIsNone(self.validator.admit(sensor_message(0), current_time_ms=100))
        self.assertEqual(self.validator.rejected_out_of_order, 1)
        self.assertEqual(self.validator.rejected_format, 0)

    def test_rejects_malformed(self):
        self.assertIsNone(self.validator.admit({"timestampMs": 5}, current_time_ms=10))
        self.assertEqual(self.validator.rejected_format, 1)
        self.assertEqual(self.validator.rejected_out_of_order, 0)

    def test_reset_ignores_messages_before_reset_time(self):
        self.validator.admit({}, current_time_ms=10)
        self.validator.reset(500000)

        self.assertEqual(self.validator.rejected_format, 0)
        self.assertIsNone(self.validator.admit(sensor_message(499999), current_time_ms=500100))
        self.assertIsNotNone(self.validator.admit(sensor_message(500001), current_time_ms=500100))

if __name__ == "__main__":
    unittest.main()
