import json
import os

import cv2
import zmq

from ..core.errors import PerceptionUnavailable
from ..logger import get_logger
from .interpreter import PerceptionInterpreter

class PerceptionClient:
    """
    Request/reply client for the object detection service.

    Protocol: [MetadataJSON, ImageBytes] -> {"data": ...} or {"error": "..."}.
    Local images are sent as JPEG bytes; remote ones (gs://, https://) are
    passed by reference in the metadata and fetched by the service.
    """
    def __init__(self, service_uri="tcp://localhost:5557", timeout_ms=1000, interpreter=None):
        self.service_uri = service_uri
        self.timeout_ms = timeout_ms
        self.interpreter = interpreter or PerceptionInterpreter()
        self.logger = get_logger(self.__class__.__name__)
        self.context = zmq.Context()
        self.socket = self._connect()

    def _connect(self):
        socket = self.context.socket(zmq.REQ)
        socket.setsockopt(zmq.LINGER, 0)
        socket.connect(self.service_uri)
        return socket

    def _reset_socket(self):
        # A REQ socket that missed its reply cannot send again
        self.socket.close()
        self.socket = self._connect()

    def _encode_image(self, image_path):
        if not image_path or not os.path.isfile(image_path):
            return b""
        img_bgr = cv2.imread(image_path)
        if img_bgr is None:
            raise PerceptionUnavailable(f"Could not read image {image_path}")
        ok, img_jpg = cv2.imencode('.jpg', img_bgr)
        if not ok:
            raise PerceptionUnavailable(f"Could not encode image {image_path}")
        return img_jpg.tobytes()

    def recognize(self, observation):
        """
        Runs object detection on the observation's camera image.

        Returns:
            list[Detection]: possibly empty when nothing was found.
        Raises:
            PerceptionUnavailable: on timeout, transport error or an error reply.
        """
        meta = {
            "carId": observation.car_id,
            "timestampMs": observation.timestamp_ms,
            "imageUri": observation.image_path,
        }
        img_bytes = self._encode_image(observation.image_path)

        try:
            self.socket.send_multipart([json.dumps(meta).encode(), img_bytes])

            if not self.socket.poll(self.timeout_ms):
                self.logger.warning("PerceptionTimeout", {"timeout_ms": self.timeout_ms,
                                                          "correlation_id": observation.timestamp_ms})
                self._reset_socket()
                raise PerceptionUnavailable(f"No reply from {self.service_uri} within {self.timeout_ms} ms")

            result = self.socket.recv_json()
        except zmq.ZMQError as e:
            self.logger.error("PerceptionTransportError", {"error": str(e)})
            self._reset_socket()
            raise PerceptionUnavailable(f"Perception transport error: {e}") from e
        except ValueError as e:
            raise PerceptionUnavailable(f"Perception reply is not valid JSON: {e}") from e

        if not isinstance(result, dict) or "error" in result:
            error = result.get("error") if isinstance(result, dict) else result
            raise PerceptionUnavailable(f"Perception service error: {error}")

        detections = self.interpreter.interpret(result.get("data"))
        self.logger.info("PerceptionResult", {"correlation_id": observation.timestamp_ms,
                                              "detections": len(detections)})
        return detections

    def close(self):
        self.socket.close()
        self.context.term()
