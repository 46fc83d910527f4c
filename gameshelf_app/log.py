import os
import sys
import time
import queue
import json
import logging
from logging.handlers import RotatingFileHandler

from . import config

# Status messages for the presentation layer (drained by the UI).
# Bounded: when nobody drains it the oldest message is dropped.
MSG_QUEUE_SIZE = 500
msg_queue: queue.Queue = queue.Queue(maxsize=MSG_QUEUE_SIZE)

# Package logger: module loggers (gameshelf_app.*) propagate here
logger = logging.getLogger("gameshelf_app")
logger.setLevel(logging.INFO)

LOG_DIR = config.LOG_DIR
os.makedirs(LOG_DIR, exist_ok=True)
LOG_FILE = os.path.join(LOG_DIR, 'gameshelf.log')

if not any(getattr(h, "baseFilename", None) == LOG_FILE for h in logger.handlers):
    # File Handler
    file_handler = RotatingFileHandler(LOG_FILE, maxBytes=10*1024*1024, backupCount=5)
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(name)s - %(message)s'))
    logger.addHandler(file_handler)

    # Stream Handler (stdout)
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter('%(message)s'))  # Keep stdout clean
    logger.addHandler(stream_handler)

# Structured search events (local-only file)
DEBUG_LOGGING = config.DEBUG_LOGGING
DEBUG_LOG_FILE = os.path.join(LOG_DIR, 'search_debug.log')

debug_logger = logging.getLogger("gameshelf_app.debug")
debug_logger.setLevel(logging.INFO)
debug_logger.propagate = False
if not any(getattr(h, "baseFilename", None) == DEBUG_LOG_FILE for h in debug_logger.handlers):
    debug_handler = RotatingFileHandler(DEBUG_LOG_FILE, maxBytes=10 * 1024 * 1024, backupCount=10)
    debug_handler.setFormatter(logging.Formatter('%(message)s'))
    debug_logger.addHandler(debug_handler)
if not DEBUG_LOGGING:
    debug_logger.disabled = True


def log(msg: str) -> None:
    """Log a message to console, file, and message queue."""
    logger.info(msg)

    # Add to queue for the presentation layer
    timestamp = time.strftime("[%H:%M:%S]")
    entry = f"{timestamp} {msg}"
    while True:
        try:
            msg_queue.put_nowait(entry)
            return
        except queue.Full:
            try:
                msg_queue.get_nowait()
            except queue.Empty:
                pass  # drained concurrently; retry the put


def drain_messages() -> list:
    """Pop every queued status message (oldest first)."""
    messages = []
    while True:
        try:
            messages.append(msg_queue.get_nowait())
        except queue.Empty:
            return messages


def debug_log_event(event: dict) -> None:
    """Write structured debug events to a local file."""
    if debug_logger.disabled:
        return
    try:
        debug_logger.info(json.dumps(event, ensure_ascii=True, separators=(',', ':'), default=str))
    except (TypeError, ValueError) as exc:
        logger.info(f"⚠️ Debug log failure: {exc}")
