# Manages and dispatches operator commands
from . import cli
from .keyboard_drive import KeyboardDriveController

BALL_COLORS = ("red", "blue", "green", "yellow")
DEFAULT_HISTORY_COUNT = 10

class CommandHandler:
    """Handles operator commands and dispatches them to the driving orchestrator."""
    def __init__(self, orchestrator, config, verbose=False):
        self.orchestrator = orchestrator
        self.config = config
        self.verbose = verbose

    def handle_command(self, command):
        """Handles a single operator command."""
        parts = command.strip().split()
        if not parts:
            return
        name = parts[0].lower()
        args = parts[1:]

        if name == 'a':
            self.orchestrator.start_self_driving()
            print("Self driving mode is ON.")
        elif name == 'm':
            self.orchestrator.start_manual()
            print("Manual driving mode is ON.")
        elif name == 'd':
            self.orchestrator.start_debug()
            print("Debug mode is ON. Use 'n' to send each decided command.")
        elif name == 'n':
            self.send_debug_step()
        elif name == 'x':
            if self.orchestrator.discard_pending() is None:
                print("No held debug command to discard.")
            else:
                print("Held debug command discarded, waiting for the next sensor message.")
        elif name in ('in', 'out'):
            self.show_history(name, args)
        elif name == 's':
            self.orchestrator.request_sensor_message()
        elif name == 'c':
            self.change_color(args)
        elif name == 'k':
            self.start_keyboard_drive()
        elif name == 'start':
            self.orchestrator.reset()
            self.orchestrator.start_listener()
            print("Listener has been (re)started.")
        elif name == 'stop':
            self.orchestrator.stop_listener()
            print("Listener has been stopped.")
        elif name == 'stats':
            cli.print_stats(self.orchestrator.stats())
        elif name == 'reset':
            self.orchestrator.reset()
            print("Statistics reset complete.")
        elif name == 'help':
            cli.print_help()
        else:
            print("Command not recognised.")

    def send_debug_step(self):
        pending = self.orchestrator.pending_command
        if pending is None:
            print("No driving command was decided yet, sending an empty one.")
        elif self.verbose:
            print(f"[DEBUG] Sending: {pending.to_json()}")
        self.orchestrator.debug_step()

    def show_history(self, direction, args):
        try:
            count = int(args[0]) if args else DEFAULT_HISTORY_COUNT
        except ValueError:
            count = -1
        if count <= 0:
            print(f"Usage: {direction} [n], where n is a positive number")
            return

        stats = self.orchestrator.stats()
        if direction == 'in':
            cli.print_inbound_history(self.orchestrator.recent_inbound(count), stats["messages_in_history"])
        else:
            cli.print_outbound_history(self.orchestrator.recent_outbound(count), stats["commands_in_history"])

    def change_color(self, args):
        if not args or args[0].lower() not in BALL_COLORS:
            print(f"Usage: c <color>, where color is one of: {', '.join(BALL_COLORS)}")
            return
        self.orchestrator.change_color(args[0])
        print(f"Target ball color set to '{args[0].lower()}'.")

    def start_keyboard_drive(self):
        """Switches to manual mode and runs keyboard driving until Ctrl-C."""
        self.orchestrator.start_manual()
        controller = KeyboardDriveController(self.orchestrator, self.config, verbose=self.verbose)
        controller.run()

    def cleanup(self):
        """Cleans up resources, like stopping the listener and closing sockets."""
        self.orchestrator.stop()
