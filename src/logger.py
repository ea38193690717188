"""
Simple logging utility for FeedbackPulse.

Logs all output to both console and file with timestamps.
Minimal implementation - no log levels or configuration.
"""

import sys
import threading
from datetime import datetime, timezone

LOG_FILE = "pipeline.log"

# Workflow runs log from worker threads
_write_lock = threading.Lock()


def log(message: str) -> None:
    """Print message to console and append it to the log file with a timestamp."""
    with _write_lock:
        print(message)

        try:
            timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")

            # Blank lines are written without a timestamp
            if message.strip():
                log_entry = f"[{timestamp}] {message}\n"
            else:
                log_entry = f"{message}\n"

            with open(LOG_FILE, "a", encoding="utf-8") as f:
                f.write(log_entry)

        except IOError as e:
            # Print warning to stderr to avoid interfering with stdout
            print(f"Warning: Failed to write to log file: {e}", file=sys.stderr)


def log_separator() -> None:
    """Log a visual separator line."""
    log("=" * 60)


def log_session_start(label: str = "Session") -> None:
    """Log the start of a CLI session or import batch."""
    log_separator()
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    log(f"{label} started: {timestamp}")
    log_separator()


def log_session_end(label: str = "Session") -> None:
    """Log the end of a CLI session or import batch."""
    log_separator()
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    log(f"{label} ended: {timestamp}")
    log_separator()
    log("")
