"""Root logger setup for the TopicGraph server, driven by TopicGraphConfig."""

import logging
from pathlib import Path
from typing import Optional

from topicgraph.core.config import TopicGraphConfig, get_config
from topicgraph.paths import get_log_dir

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Libraries that log every request or chunk at INFO
CHATTY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "google_genai")


def console_level(config: TopicGraphConfig) -> int:
    return logging.DEBUG if config.debug else logging.getLevelName(config.log_level)


def setup_logging(config: Optional[TopicGraphConfig] = None, log_file_name: str = 'topicgraph.log') -> Optional[Path]:
    """
    Configure the root logger from ``config`` (get_config() when omitted).

    The console follows ``log_level`` (DEBUG in debug mode). The log file in
    the per-user log directory always records INFO and above, so merges and
    failures stay on disk even with a quiet console.

    Returns:
        Path of the log file, or None when the log directory is not writable
    """
    config = config or get_config()
    level = console_level(config)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(min(level, logging.INFO))

    formatter = logging.Formatter(LOG_FORMAT)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if config.debug else logging.WARNING)

    try:
        log_file_path = get_log_dir() / log_file_name
        file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
    except OSError as e:
        root.warning(f"File logging disabled: {e}")
        return None
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    root.info(f"Logging to {log_file_path} (console level {logging.getLevelName(level)})")
    return log_file_path
