# Command-line interface (UI) elements

def print_title():
    """Prints the application title."""
    print("  ____            _             ____  _ _       _   ")
    print(" |  _ \\  ___ _ __| |__  _   _  |  _ \\(_) | ___ | |_ ")
    print(" | | | |/ _ \\ '__| '_ \\| | | | | |_) | | |/ _ \\| __|")
    print(" | |_| |  __/ |  | |_) | |_| | |  __/| | | (_) | |_ ")
    print(" |____/ \\___|_|  |_.__/ \\__, | |_|   |_|_|\\___/ \\__|")
    print("                        |___/                        ")
    print("------------------------------------------------------")

def print_help():
    """Prints the help message."""
    print("Available commands:")
    print("  a        - Self driving mode")
    print("  m        - Manual driving mode")
    print("  d        - Debug mode (decisions are held until sent with 'n')")
    print("  n        - Send the held debug command to the car")
    print("  x        - Discard the held debug command and wait for the next sensor message")
    print("  s        - Ask the car to send a new sensor message")
    print("  c <col>  - Change target ball color (red, blue, green, yellow)")
    print("  k        - Keyboard driving (manual mode)")
    print("  in [n]   - Show the last n sensor messages received (default 10)")
    print("  out [n]  - Show the last n driving commands sent (default 10)")
    print("  start    - (Re)start the sensor listener and reset statistics")
    print("  stop     - Stop the sensor listener")
    print("  stats    - Show statistics")
    print("  reset    - Reset statistics")
    print("  help     - Show this help message")
    print("  exit     - Exit Derby Pilot")

def print_stats(stats):
    """Prints the controller statistics."""
    print("--- Derby Pilot Statistics ---")
    print(f"  Driving mode:            {stats['mode']}")
    print(f"  Ball color:              {stats['ball_color']}")
    print(f"  Listener running:        {stats['listening']}")
    print(f"  Messages received:       {stats['messages_received']}")
    print(f"  Messages sent:           {stats['messages_sent']}")
    print(f"  Publish errors:          {stats['publish_errors']}")
    print(f"  Rejected format:         {stats['rejected_format']}")
    print(f"  Rejected out of order:   {stats['rejected_out_of_order']}")
    print(f"  Decision failures:       {stats['decision_failures'] or 0}")
    print(f"  Most recent message (ms): {stats['latest_timestamp_ms']}")
    print(f"  Commands in history:     {stats['commands_in_history']}")
    print(f"  Messages in history:     {stats['messages_in_history']}")
    if stats["pending_command"] is not None:
        print(f"  Pending debug command:   {stats['pending_command']}")
    print("------------------------------")

def print_inbound_history(observations, total):
    """Prints received sensor messages, oldest first."""
    print(f"--- Inbound Message History ({len(observations)} of {total}) ---")
    for obs in observations:
        state = obs.car_state
        print(f"  [{obs.timestamp_ms}] car={obs.car_id} balls={state.balls_collected} color={state.color} "
              f"obstacle={state.obstacle_found} laser={obs.laser_distance_mm} image={obs.image_path}")
    print("------------------------------")

def print_outbound_history(commands, total):
    """Prints sent driving commands, oldest first."""
    print(f"--- Outbound Message History ({len(commands)} of {total}) ---")
    for command in commands:
        print(f"  {command.to_json()}")
    print("------------------------------")

def user_input(prompt):
    """Gets input from the user."""
    return input(prompt)
