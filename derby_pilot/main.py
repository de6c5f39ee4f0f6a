# Main application entry point
import argparse
import sys

import zmq

from . import cli
from .config import load_config
from .command_handler import CommandHandler
from .core.history import CommandHistory
from .core.navigation.engine import NavigationEngine
from .io.dispatch import CommandDispatcher
from .io.ingestion import ObservationValidator
from .logger import setup_logging, get_logger
from .orchestrators.driving_orchestrator import DrivingOrchestrator
from .perception.perception_client import PerceptionClient

def build_orchestrator(config, args):
    """Wire up the perception client, engine, dispatcher and orchestrator."""
    transport = config.transport
    history = CommandHistory(retention=transport.history_retention)
    dispatcher = CommandDispatcher(history, command_uri=args.command_uri or transport.command_uri)
    perception = PerceptionClient(args.perception_uri or transport.perception_uri,
                                  timeout_ms=transport.perception_timeout_ms)
    return DrivingOrchestrator(
        engine=NavigationEngine(config.game),
        perception=perception,
        dispatcher=dispatcher,
        validator=ObservationValidator(transport.max_message_age_sec),
        history=history,
        sensor_uri=args.sensor_uri or transport.sensor_uri,
        ball_color=config.ball_color,
    )

def main():
    """Main function to run the Derby Pilot driving controller."""
    parser = argparse.ArgumentParser()
    parser.add_argument("--car-id", type=str, default="1",
                        help="ID of the car this controller drives (used in the session log name).")
    parser.add_argument("--settings", type=str, default="game_settings.json",
                        help="Path to the game settings JSON file.")
    parser.add_argument("--keyboard", type=str, default="keyboard.json",
                        help="Path to the keyboard mapping JSON file.")
    parser.add_argument("--sensor-uri", type=str, default=None,
                        help="ZeroMQ address the car publishes sensor messages on.")
    parser.add_argument("--command-uri", type=str, default=None,
                        help="ZeroMQ address to publish driving commands on.")
    parser.add_argument("--perception-uri", type=str, default=None,
                        help="ZeroMQ address of the object detection service.")
    parser.add_argument("--mode", choices=["manual", "automatic", "debug"], default="manual",
                        help="Driving mode to start in.")
    parser.add_argument("--session-id", type=str, default=None,
                        help="Session ID for the log file name.")
    parser.add_argument("--verbose", action="store_true",
                        help="Enable verbose debug output.")
    args = parser.parse_args()

    setup_logging(session_id=args.session_id or f"car{args.car_id}", verbose=args.verbose)
    logger = get_logger("Main")

    cli.print_title()

    config = load_config(args.settings, args.keyboard)

    try:
        orchestrator = build_orchestrator(config, args)
    except zmq.ZMQError as e:
        logger.error("StartupFailed", {"error": str(e)})
        print(f"Failed to open ZeroMQ sockets: {e}")
        sys.exit(1)

    print(" --- Derby Pilot Ready ---")
    cli.print_help()

    command_handler = CommandHandler(orchestrator, config, verbose=args.verbose)

    if args.mode == "automatic":
        command_handler.handle_command("a")
    elif args.mode == "debug":
        command_handler.handle_command("d")
    else:
        orchestrator.start_listener()

    try:
        while True:
            command = cli.user_input("Enter Command: ")

            if command.strip().lower() == 'exit':
                print("Shutting down Derby Pilot...")
                break

            command_handler.handle_command(command)

    except KeyboardInterrupt:
        print("\nCaught KeyboardInterrupt. Shutting down...")
    finally:
        command_handler.cleanup()

    print(" --- Exiting Derby Pilot ---")

if __name__ == "__main__":
    main()
