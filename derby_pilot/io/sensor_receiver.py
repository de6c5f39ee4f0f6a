import json
import threading
import time

import zmq

from ..logger import get_logger

class SensorReceiver(threading.Thread):
    """
    Listens for sensor messages from the car and hands each decoded message to a callback.
    Messages are delivered one at a time, in arrival order.
    """
    def __init__(self, sensor_uri="tcp://localhost:5570", topic="sensors"):
        super().__init__()
        self.sensor_uri = sensor_uri
        self.topic = topic
        self.running = False
        self.callback = None
        self.daemon = True
        self.logger = get_logger(self.__class__.__name__)

    def start_receiving(self, callback):
        """Register a callback(message_dict) to be called on new messages."""
        self.callback = callback
        self.start()

    def stop(self):
        self.running = False
        if self.is_alive():
            self.join()

    def run(self):
        self.running = True
        context = zmq.Context()
        socket = context.socket(zmq.SUB)
        socket.connect(self.sensor_uri)
        socket.setsockopt_string(zmq.SUBSCRIBE, self.topic)

        self.logger.info("SensorListenerStarted", {"uri": self.sensor_uri, "topic": self.topic})

        while self.running:
            try:
                if not socket.poll(100):
                    continue

                # Protocol: [Topic, JSON payload]
                msg = socket.recv_multipart()
                if len(msg) != 2:
                    self.logger.warning("SensorMessageInvalid", {"frames": len(msg)})
                    continue

                try:
                    message = json.loads(msg[1])
                except ValueError as e:
                    self.logger.warning("SensorMessageUndecodable", {"error": str(e)})
                    continue

                if self.callback:
                    self.callback(message)
            except zmq.ZMQError as e:
                self.logger.error("SensorListenerError", {"error": str(e)})
                time.sleep(0.1)
            except Exception as e:
                # One bad cycle must not stop the car from getting commands
                self.logger.exception("SensorCallbackFailed", {"error": repr(e)})

        socket.close()
        context.term()
        self.logger.info("SensorListenerStopped")
