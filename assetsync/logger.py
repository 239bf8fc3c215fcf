"""
Logging utilities and colored console output for assetsync.
"""

import logging
import os
import sys

from .config import DEFAULT_LOG_FILE

LOGGER_NAME = "assetsync"

CONFIG_PREFIXES = (
    "CONFIGURATION:",
    "Bucket:",
    "Provider:",
    "Endpoint URL:",
    "Public Path:",
    "Assets Prefix:",
    "Manifest:",
    "Remote Files:",
    "Gzip Compression:",
    "Upload Workers:",
    "CDN Distribution:",
    "AWS Credentials:",
)


class ColoredFormatter(logging.Formatter):
    """Custom formatter with color support for different log levels"""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[41m",  # Red background
        "RESET": "\033[0m",  # Reset to default
    }

    def format(self, record):
        # Determine prefix based on message content or level
        message = record.getMessage()
        reset = self.COLORS["RESET"]

        # Level takes precedence over content for real problems
        if record.levelno >= logging.ERROR:
            prefix = "ERROR"
            color = self.COLORS["ERROR"]
        elif record.levelno == logging.WARNING:
            prefix = "WARNING"
            color = self.COLORS["WARNING"]
        elif message.startswith("STEP ") or "ASSET SYNC" in message or "SYNC COMPLETED" in message:
            prefix = "EXECUTE"
            color = "\033[35m"  # Purple for execution steps
        elif message.startswith("Progress:") or message.startswith("Uploading"):
            prefix = "PROGRESS"
            color = "\033[34m"  # Blue for progress
        elif message.startswith(CONFIG_PREFIXES):
            prefix = "CONFIG"
            color = "\033[36m"  # Cyan for configuration
        elif "completed" in message.lower() or "finished" in message.lower():
            prefix = "SUCCESS"
            color = "\033[32m"  # Green for success
        elif record.levelno == logging.DEBUG:
            prefix = "DEBUG"
            color = self.COLORS["DEBUG"]
        else:
            prefix = "INFO"
            color = "\033[37m"  # White for general info

        return f"{color}[{prefix}]{reset} {message}"


# Package logger; handlers are attached by setup_logger()
logger = logging.getLogger(LOGGER_NAME)


def setup_logger(log_file=DEFAULT_LOG_FILE, level=logging.INFO):
    """Set up and configure the logger with file and console handlers."""
    # Enable ANSI support on Windows consoles
    if os.name == "nt":
        os.system("color")

    logger.setLevel(level)
    logger.handlers = []  # Clear any existing handlers to avoid duplicates
    logger.propagate = False

    if log_file:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(log_dir, exist_ok=True)

        # Add file handler with timestamps and level
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    # Add console handler with simplified format and immediate flushing
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ColoredFormatter())
    if hasattr(console_handler.stream, "reconfigure"):
        console_handler.stream.reconfigure(line_buffering=True)
    logger.addHandler(console_handler)

    return logger


def log_step(message, log=None):
    """Log a major processing step with visual separation"""
    (log or logger).info(f"\n{'='*70}\n{message}\n{'='*70}")


def log_progress_grouped(
    percentage, count=None, total=None, extra_info=None, last_logged_percentage=None, log=None
):
    """Log progress once per 10% step, always including the first and last item.

    Returns the step that was last logged so callers can pass it back in.
    """
    step = int(percentage // 10) * 10
    crossed = last_logged_percentage is None or step > last_logged_percentage
    if not (crossed or count == 1 or percentage >= 100):
        return last_logged_percentage

    message = f"Progress: {step}%"
    if count is not None and total is not None:
        message += f" ({count}/{total})"
    if extra_info:
        message += f" - {extra_info}"
    (log or logger).info(message)
    return step


def format_time(seconds):
    """Seconds below a minute keep two decimals; longer spans are whole units."""
    if seconds < 60:
        return f"{seconds:.2f} seconds"
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours} hours {minutes} minutes {secs} seconds"
    return f"{minutes} minutes {secs} seconds"
