from prompt_toolkit import Application
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import Layout
from prompt_toolkit.layout.containers import Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.formatted_text import HTML

from .logger import get_logger

class KeyboardDriveController:
    """
    Drive the car by hand using keyboard inputs via prompt_toolkit.
    Every key press publishes one discrete manual command (drive or turn by a step).
    """
    def __init__(self, orchestrator, config, verbose=False):
        self.orchestrator = orchestrator
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)

        self.kb_config = config.keyboard_config
        self.max_speed = config.game.max_speed
        self.drive_step = self.kb_config.get("drive_step_mm", 100)
        self.turn_step = self.kb_config.get("turn_step_deg", 15)

        # Speed multiplier (can be adjusted at runtime)
        self.speed_multiplier = self.kb_config.get("max_speed_multiplier", 1.0) / 2
        self.speed_step = self.kb_config.get("speed_step", 0.1)
        self.min_multiplier = self.kb_config.get("min_speed_multiplier", 0.1)
        self.max_multiplier = self.kb_config.get("max_speed_multiplier", 1.0)

        self.last_action = None
        self.app = None

    @property
    def speed(self):
        return self.max_speed * self.speed_multiplier

    def run(self):
        """Main loop for keyboard driving."""
        print(" --- Keyboard Driving Started ---")
        print(" Controls: Check keyboard.json for mappings.")
        self.logger.info("KeyboardDriveStarted")

        kb = KeyBindings()
        mapping = self.kb_config.get("key_mapping", {})

        @kb.add('c-c')
        def _(event):
            event.app.exit()

        for k in mapping.keys():
            try:
                @kb.add(k)
                def _(event, key_bind=k):
                    self.handle_key(key_bind)
            except ValueError as e:
                print(f"Warning: Could not bind key '{k}': {e}")

        def get_text():
            return HTML(
                f"<b>Keyboard Driving</b>\n"
                f"Speed: {self.speed:.0f} ({self.speed_multiplier:.1f}x, step {self.speed_step})\n"
                f"Last: {self.last_action or '-'}\n"
                f"<i>Press 'Ctrl-C' to stop</i>")

        self.app = Application(
            layout=Layout(Window(content=FormattedTextControl(get_text))),
            key_bindings=kb,
            full_screen=False,
            refresh_interval=0.1
        )

        try:
            self.app.run()
        finally:
            self.logger.info("KeyboardDriveStopped")
            print(" --- Keyboard Driving Finished ---")

    def handle_key(self, key_name):
        """Process a key press event."""
        action = self.kb_config.get("key_mapping", {}).get(key_name)
        if not action:
            return

        if action == 'increase_speed':
            self.speed_multiplier = min(self.max_multiplier, round(self.speed_multiplier + self.speed_step, 2))
        elif action == 'decrease_speed':
            self.speed_multiplier = max(self.min_multiplier, round(self.speed_multiplier - self.speed_step, 2))
        elif action in ('forward', 'backward'):
            self.orchestrator.manual_command(action, self.drive_step, speed=self.speed)
        elif action in ('turn_left', 'turn_right'):
            self.orchestrator.manual_command(action, self.turn_step, speed=self.speed)
        elif action in ('gripper_open', 'gripper_close', 'request_sensor'):
            self.orchestrator.manual_command(action)
        else:
            self.logger.warning("UnknownKeyAction", {"key": key_name, "action": action})
            return

        self.last_action = action
        if self.verbose:
            print(f"[{self.__class__.__name__}] {key_name} -> {action}")
        if self.app:
            self.app.invalidate()
