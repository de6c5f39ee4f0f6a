from typing import List, Any

from ..core.errors import PerceptionUnavailable
from ..core.models import Detection, BBox
from ..logger import get_logger

class PerceptionInterpreter:
    """
    Decouples raw inference output from the navigation engine.
    Handles backend-specific data structures (normalized bBoxes, YOLO pixel boxes)
    and returns a list of normalized Detection objects.
    """
    def __init__(self, width: int = 640, height: int = 480):
        # Used for pixel boxes when the response does not carry the image size
        self.width = width
        self.height = height
        self.logger = get_logger(self.__class__.__name__)

    def interpret(self, raw_data: Any) -> List[Detection]:
        # 1. Normalized boxes: {"bBoxes": [{"label", "score", "x", "y", "w", "h"}]}
        if isinstance(raw_data, dict) and "bBoxes" in raw_data:
            return self._from_normalized(raw_data["bBoxes"])

        # 2. YOLO / pixel boxes: [{"class", "confidence", "bbox": [x1, y1, x2, y2]}]
        if isinstance(raw_data, list):
            return self._from_pixels(raw_data, self.width, self.height)
        if isinstance(raw_data, dict) and "detections" in raw_data:
            width = raw_data.get("width", self.width)
            height = raw_data.get("height", self.height)
            return self._from_pixels(raw_data["detections"], width, height)

        raise PerceptionUnavailable(f"Unrecognised perception response: {type(raw_data).__name__}")

    def _from_normalized(self, boxes):
        detections = []
        for box in boxes or []:
            try:
                detections.append(Detection.from_dict(box))
            except (KeyError, TypeError, ValueError) as e:
                self.logger.warning("DetectionSkipped", {"reason": str(e), "raw": box})
        return detections

    def _from_pixels(self, boxes, width, height):
        try:
            width, height = float(width), float(height)
        except (TypeError, ValueError):
            raise PerceptionUnavailable(f"Invalid image size {width}x{height}")
        if width <= 0 or height <= 0:
            raise PerceptionUnavailable(f"Invalid image size {width}x{height}")

        detections = []
        for det in boxes or []:
            try:
                x1, y1, x2, y2 = (float(v) for v in det["bbox"])
                detections.append(Detection(
                    label=str(det["class"]),
                    score=float(det["confidence"]),
                    bbox=BBox(x1 / width, y1 / height, (x2 - x1) / width, (y2 - y1) / height),
                ))
            except (KeyError, TypeError, ValueError) as e:
                self.logger.warning("DetectionSkipped", {"reason": str(e), "raw": det})
        return detections
