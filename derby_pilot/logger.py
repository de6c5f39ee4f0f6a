import logging
import json
import datetime
import sys
import os

LOG_DIR = "logs"

def _payload(record):
    return record.args if isinstance(record.args, dict) else {}

class JSONFormatter(logging.Formatter):
    """
    One JSON object per line: timestamp, level, component, event and data.

    Events carrying a `correlation_id` (the timestamp of the sensor message that
    triggered them) get it lifted to the top level, so one decision cycle can
    be followed from ingestion to dispatch with a single filter.
    """
    def format(self, record):
        data = _payload(record)
        log_record = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "event": record.msg,
            "data": data
        }
        if data.get("correlation_id") is not None:
            log_record["correlation_id"] = data["correlation_id"]
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)

class ConsoleFormatter(logging.Formatter):
    """[TIME] [LEVEL] [COMPONENT] Event key=value ..."""
    def __init__(self):
        super().__init__('[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s', datefmt='%H:%M:%S')

    def formatMessage(self, record):
        line = super().formatMessage(record)
        data = _payload(record)
        if data:
            line += " " + " ".join(f"{k}={v}" for k, v in data.items())
        return line

def session_log_path(session_id=None):
    """logs/session_<id>.jsonl, or a timestamped name when no id is given."""
    if not session_id:
        session_id = datetime.datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    return os.path.join(LOG_DIR, f"session_{session_id}.jsonl")

def setup_logging(session_id=None, log_file=None, verbose=False):
    """
    Configures the root logger to write the session log (JSONL) and the operator console.

    Args:
        session_id (str): Optional ID to include in the filename (e.g. 'car1').
        log_file (str): Specific path to log file. If provided, overrides dynamic naming.
        verbose (bool): If True, log DEBUG events and echo INFO+ on the console.

    Returns:
        str: Path of the JSONL log file.
    """
    level = logging.DEBUG if verbose else logging.INFO
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Re-initialising (new session, tests) must not duplicate handlers
    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers = []

    log_file = log_file or session_log_path(session_id)
    if os.path.dirname(log_file):
        os.makedirs(os.path.dirname(log_file), exist_ok=True)

    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(JSONFormatter())
    file_handler.setLevel(level)
    root_logger.addHandler(file_handler)

    # The console is shared with the command prompt, so only problems show up by default
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ConsoleFormatter())
    console_handler.setLevel(logging.INFO if verbose else logging.WARNING)
    root_logger.addHandler(console_handler)

    logging.getLogger("asyncio").setLevel(logging.ERROR)
    logging.getLogger("prompt_toolkit").setLevel(logging.ERROR)

    logging.info("LoggingInitialized", {"log_file": log_file, "verbose": verbose})
    return log_file

def get_logger(name):
    """
    Returns a logger instance with the given name.
    """
    return logging.getLogger(name)
