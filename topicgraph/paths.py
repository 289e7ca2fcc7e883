"""Writable per-user directories for logs and saved graph snapshots."""

import os
import sys
from pathlib import Path

APP_NAME = "TopicGraph"


def _base_dir(kind: str) -> Path:
    # TOPICGRAPH_HOME puts everything under one directory (containers, tests)
    home = os.environ.get("TOPICGRAPH_HOME")
    if home:
        return Path(home).expanduser()
    if sys.platform == "darwin":
        if kind == "logs":
            return Path.home() / "Library" / "Logs" / APP_NAME
        return Path.home() / "Library" / "Application Support" / APP_NAME
    if sys.platform == "win32":
        root = os.environ.get("LOCALAPPDATA" if kind == "logs" else "APPDATA", Path.home())
        return Path(root) / APP_NAME
    return Path.home() / ".topicgraph"


def _ensure(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_log_dir() -> Path:
    """Returns a writable directory for logs."""
    return _ensure(_base_dir("logs") / "logs")


def get_app_data_dir() -> Path:
    return _ensure(_base_dir("data"))


def get_snapshot_dir() -> Path:
    """Default directory of the file snapshot store"""
    return _ensure(get_app_data_dir() / "snapshots")
