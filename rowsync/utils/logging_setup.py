"""
Shared logging setup for rowsync.

Coloured console output at the requested level plus a DEBUG log file per
command invocation.
"""
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

# Third-party loggers that are too chatty at DEBUG
NOISY_LOGGERS = ('googleapiclient.discovery_cache', 'urllib3', 'google_auth_oauthlib')


class ColourFormatter(logging.Formatter):
    """
    Formatter with ANSI colours on the level name.
    """

    COLOURS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'RESET': '\033[0m',
    }

    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLOURS:
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{self.COLOURS[levelname]}{levelname:<8}{self.COLOURS['RESET']}"
        return super().format(record)


def setup_logging(log_level: str = 'INFO', log_dir: Optional[str] = None, component: str = 'rowsync'):
    """
    Set up logging for a rowsync command.

    Args:
        log_level: Console level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files (None = ./logs)
        component: Prefix of the log file name

    Returns:
        Root logger
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)
    logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColourFormatter(
        '[%(asctime)s] %(levelname)s | %(name)-12s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(console_handler)

    log_path = Path(log_dir or './logs')
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / f"{component}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '[%(asctime)s] %(levelname)-8s | %(name)-12s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info(f"Logging initialised (level: {log_level}, file: {log_file})")
    return logger
