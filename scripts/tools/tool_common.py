#!/usr/bin/env python3
"""
Shared helpers for the BetterDiscord maintenance scripts

Logging setup, whole-file text I/O and .bak backups used by every script
in this directory.
"""

import logging
import os
import shutil
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Configure root logging for a script entry point"""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )


def read_text(path) -> str:
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def write_text(path, content: str):
    with open(path, 'w', encoding='utf-8') as f:
        f.write(content)


def now_stamp() -> str:
    return datetime.now().strftime("%Y%m%d-%H%M%S")


def backup_path_for(path, suffix: str = ".bak") -> Path:
    """X.theme.css -> X.theme.css.bak (the full name is kept)"""
    path = Path(path)
    return path.with_name(path.name + suffix)


def backup_file(path, suffix: str = ".bak") -> Path:
    """Copy a file next to itself before a destructive rewrite"""
    backup = backup_path_for(path, suffix)
    shutil.copy2(path, backup)
    logger.info(f"💾 Backup saved: {backup.name}")
    return backup


def is_file_locked(path) -> bool:
    """Best-effort lock probe: try opening the file in append mode"""
    try:
        with open(path, 'a'):
            pass
        return False
    except (PermissionError, BlockingIOError):
        return True


def describe_permissions(path) -> str:
    mode = os.stat(path).st_mode
    return oct(mode & 0o777)
