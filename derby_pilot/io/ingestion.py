import time

from ..core.errors import MalformedObservation
from ..core.models import SensorObservation
from ..logger import get_logger

MAX_MSG_AGE_SEC = 60

def now_ms():
    return int(time.time() * 1000)

class ObservationValidator:
    """
    Admits sensor messages into the decision loop.

    A message is rejected when it cannot be parsed (format), when its timestamp
    is not newer than every message seen so far, or when it is older than the
    freshness window (out of order / stale).
    """
    def __init__(self, max_message_age_sec=MAX_MSG_AGE_SEC):
        self.max_message_age_sec = max_message_age_sec
        self.logger = get_logger(self.__class__.__name__)
        self.max_timestamp_ms = 0
        self.rejected_format = 0
        self.rejected_out_of_order = 0

    def reset(self, reset_time_ms=None):
        """Zero the counters; anything stamped before `reset_time_ms` is ignored from now on."""
        self.rejected_format = 0
        self.rejected_out_of_order = 0
        self.max_timestamp_ms = reset_time_ms if reset_time_ms is not None else now_ms()

    def admit(self, message, current_time_ms=None):
        """
        Returns:
            SensorObservation, or None if the message was rejected.
        """
        try:
            observation = SensorObservation.from_message(message)
        except MalformedObservation as e:
            self.rejected_format += 1
            self.logger.error("ObservationRejected", {"reason": "format", "error": str(e)})
            return None

        timestamp_ms = observation.timestamp_ms
        if timestamp_ms <= self.max_timestamp_ms:
            self.rejected_out_of_order += 1
            self.logger.error("ObservationRejected", {
                "reason": "out_of_order",
                "timestamp_ms": timestamp_ms,
                "behind_ms": self.max_timestamp_ms - timestamp_ms,
            })
            return None
        # Newer than anything seen so far, even if it turns out to be too old below
        self.max_timestamp_ms = timestamp_ms

        current_time_ms = current_time_ms if current_time_ms is not None else now_ms()
        oldest_allowed_ms = current_time_ms - self.max_message_age_sec * 1000
        if timestamp_ms < oldest_allowed_ms:
            self.rejected_out_of_order += 1
            self.logger.error("ObservationRejected", {
                "reason": "stale",
                "timestamp_ms": timestamp_ms,
                "too_old_by_ms": oldest_allowed_ms - timestamp_ms,
            })
            return None

        return observation
