import os
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

load_dotenv()
LOGS_PATH = Path(os.getenv("LOGS_PATH", "outs/logs"))


def setup_logger(log_dir: Path = LOGS_PATH, level: str = "INFO", prefix: str = "session") -> Path:
    """
    Configure loguru to write to a timestamped log file and the console.

    The file sink records DEBUG and above; the console shows ``level`` and above.

    Args:
        log_dir: Directory for log files (default: LOGS_PATH from environment)
        level: Console log level
        prefix: Log file name prefix

    Returns:
        Path to the created log file
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"{prefix}_{timestamp}.txt"

    # Remove default handler and add file handler
    logger.remove()
    logger.add(log_file, format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}", level="DEBUG")
    logger.add(sys.stderr, format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}", level=level)

    return log_file
