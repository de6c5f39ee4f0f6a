# Configuration loading (game settings, keyboard mapping)
import copy
import json
from dataclasses import dataclass

from .core.navigation.engine import GameSettings
from .core.navigation.geometry import CameraModel

DEFAULT_GAME_SETTINGS = {
    "camera": {
        "h_field_of_view_deg": 62.2,
        "focal_length_mm": 3.04,
        "sensor_height_mm": 2.76,
        "min_distance_to_camera_mm": 20.0,
        "angle_calibration_multiplier": 0.75
    },
    "game": {
        "max_speed": 1000.0,
        "balls_needed": 3,
        "ball_label_suffix": "_ball",
        "home_label_suffix": "_home",
        "ball_size_mm": 40.0,
        "home_size_mm": 250.0,
        "ball_color": "red"
    },
    "transport": {
        "sensor_uri": "tcp://localhost:5570",
        "command_uri": "tcp://*:5571",
        "perception_uri": "tcp://localhost:5557",
        "perception_timeout_ms": 1000,
        "max_message_age_sec": 60,
        "history_retention": 3600
    }
}

DEFAULT_KEYBOARD_CONFIG = {
    "drive_step_mm": 100,
    "turn_step_deg": 15,
    "speed_step": 0.1,
    "min_speed_multiplier": 0.1,
    "max_speed_multiplier": 1.0,
    "key_mapping": {
        "up": "forward",
        "down": "backward",
        "left": "turn_left",
        "right": "turn_right",
        "o": "gripper_open",
        "c": "gripper_close",
        "+": "increase_speed",
        "-": "decrease_speed",
        "s": "request_sensor"
    }
}

def _merge(defaults, overrides):
    """Recursively overlay `overrides` on a copy of `defaults`."""
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged

def load_game_settings(file_path="game_settings.json"):
    """Load game settings from a JSON file."""
    try:
        with open(file_path, "r") as f:
            settings = json.load(f)
        print("Game settings loaded successfully.")
        return settings
    except (IOError, json.JSONDecodeError) as e:
        print(f"Error loading game settings from {file_path}: {e}")
        return {}

def load_keyboard_config(file_path="keyboard.json"):
    """Load keyboard driving key mapping from a JSON file."""
    try:
        with open(file_path, "r") as f:
            keyboard = json.load(f)
        print("Keyboard mapping loaded successfully.")
        return keyboard
    except (IOError, json.JSONDecodeError) as e:
        print(f"Error loading keyboard mapping from {file_path}: {e}")
        return {}

@dataclass(frozen=True)
class TransportSettings:
    sensor_uri: str = "tcp://localhost:5570"
    command_uri: str = "tcp://*:5571"
    perception_uri: str = "tcp://localhost:5557"
    perception_timeout_ms: int = 1000
    max_message_age_sec: float = 60
    history_retention: int = 3600

def build_game_settings(raw):
    """Turn the merged settings dict into the engine's typed settings."""
    camera = CameraModel(**raw["camera"])
    game = dict(raw["game"])
    game.pop("ball_color", None)
    return GameSettings(camera=camera, **game)

class Config:
    """A class to hold the application configuration."""
    def __init__(self, settings_path="game_settings.json", keyboard_path="keyboard.json"):
        self.raw_settings = _merge(DEFAULT_GAME_SETTINGS, load_game_settings(settings_path))
        self.keyboard_config = _merge(DEFAULT_KEYBOARD_CONFIG, load_keyboard_config(keyboard_path))

        self.game = build_game_settings(self.raw_settings)
        self.transport = TransportSettings(**self.raw_settings["transport"])
        self.ball_color = self.raw_settings["game"]["ball_color"]

def load_config(settings_path="game_settings.json", keyboard_path="keyboard.json"):
    """Load all configurations."""
    return Config(settings_path, keyboard_path)
