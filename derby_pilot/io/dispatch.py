import zmq

from ..logger import get_logger

class CommandDispatcher:
    """
    Publishes drive commands to the car and records the ones that went out.

    The dispatcher is the only writer of the command history: a command is
    appended once it has been published successfully.
    """
    def __init__(self, history, command_uri="tcp://*:5571", topic="commands", context=None):
        self.history = history
        self.command_uri = command_uri
        self.topic = topic
        self.logger = get_logger(self.__class__.__name__)
        self.context = context or zmq.Context()
        self.socket = self.context.socket(zmq.PUB)
        self.socket.bind(command_uri)

        self.messages_sent = 0
        self.publish_errors = 0

    def reset(self):
        self.messages_sent = 0
        self.publish_errors = 0

    def publish(self, command):
        """
        Returns:
            bool: True if the command was sent.
        """
        if command is None:
            self.logger.info("PublishSkipped", {"reason": "no command"})
            return False

        command.finalize()
        payload = command.to_json()
        try:
            self.socket.send_multipart([self.topic.encode(), payload.encode()])
        except zmq.ZMQError as e:
            self.publish_errors += 1
            self.logger.error("PublishFailed", {"error": str(e), "correlation_id": command.correlation_id})
            return False

        self.messages_sent += 1
        self.history.append(command)
        self.logger.info("CommandPublished", {
            "count": self.messages_sent,
            "goal": command.goal.value if command.goal else None,
            "correlation_id": command.correlation_id,
        })
        return True

    def close(self):
        self.socket.close()
