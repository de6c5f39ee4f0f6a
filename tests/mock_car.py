import zmq
import time
import json
import argparse

def build_sensor_message(car_id, balls_collected, color="red", image_path=""):
    return {
        "carId": car_id,
        "timestampMs": int(time.time() * 1000),
        "carState": {
            "ballsCollected": balls_collected,
            "color": color,
            "batteryLeft": 99,
        },
        "sensors": {
            "frontLaserDistanceMm": 500,
            "frontCameraImagePath": image_path,
        },
    }

def mock_car(sensor_uri="tcp://*:5570", command_uri="tcp://localhost:5571", image_path=""):
    """
    Pretends to be the car: publishes a sensor message, then another one every
    time a command asks for it (or once a second if nothing arrives).
    """
    context = zmq.Context()
    sensors = context.socket(zmq.PUB)
    sensors.bind(sensor_uri)
    commands = context.socket(zmq.SUB)
    commands.connect(command_uri)
    commands.setsockopt_string(zmq.SUBSCRIBE, "commands")

    print(f"Mock Car publishing sensors on {sensor_uri}, listening for commands on {command_uri}")

    balls_collected = 0
    try:
        while True:
            message = build_sensor_message(1, balls_collected, image_path=image_path)
            sensors.send_multipart([b"sensors", json.dumps(message).encode()])
            print(f"Sent: {json.dumps(message)}")

            if not commands.poll(1000):
                continue

            _, payload = commands.recv_multipart()
            command = json.loads(payload)
            print(f"Received: {json.dumps(command)}")
            for action in command.get("actions", []):
                if action["type"] == "addBallCount":
                    balls_collected += 1
            time.sleep(0.1)

    except KeyboardInterrupt:
        print("Stopping Mock Car")
    finally:
        sensors.close()
        commands.close()
        context.term()

if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--sensor-uri", default="tcp://*:5570")
    parser.add_argument("--command-uri", default="tcp://localhost:5571")
    parser.add_argument("--image", default="", help="Local image to report as the camera frame.")
    args = parser.parse_args()
    mock_car(args.sensor_uri, args.command_uri, args.image)
