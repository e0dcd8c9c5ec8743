#!/usr/bin/env python3
"""
Artifact Removal Operations

Deletes confirmed artifact directories one at a time. Every failure is
captured in its result so that one stubborn directory never stops the rest.
"""

import logging
import os
import shutil
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RemovalStatus(Enum):
    """Outcome of a single removal"""

    REMOVED = "removed"
    MISSING = "missing"
    FAILED = "failed"


@dataclass
class RemovalResult:
    """Result of removing one path"""

    path: str
    status: RemovalStatus
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status is not RemovalStatus.FAILED


def remove_path(path: str) -> RemovalResult:
    """Remove a directory tree, a symlink or a file at *path*

    Symlinks are unlinked rather than followed, so a linked artifact never
    takes its target down with it.
    """
    if not os.path.lexists(path):
        return RemovalResult(path, RemovalStatus.MISSING)
    try:
        if os.path.islink(path) or not os.path.isdir(path):
            os.unlink(path)
        else:
            shutil.rmtree(path)
    except OSError as e:
        logger.warning("Failed to remove %s: %s", path, e)
        return RemovalResult(path, RemovalStatus.FAILED, str(e))
    logger.info("Removed %s", path)
    return RemovalResult(path, RemovalStatus.REMOVED)


class ArtifactRemover:
    """Sequential removal with per-item error collection"""

    def __init__(self, progress_callback: Optional[Callable[[str], None]] = None):
        self.progress_callback = progress_callback
        self.results: list[RemovalResult] = []

    def remove(self, path: str) -> RemovalResult:
        if self.progress_callback:
            self.progress_callback(f"Removing {path}")
        result = remove_path(path)
        self.results.append(result)
        return result

    @property
    def removed_count(self) -> int:
        return sum(1 for r in self.results if r.status is RemovalStatus.REMOVED)

    @property
    def failures(self) -> list[RemovalResult]:
        return [r for r in self.results if r.status is RemovalStatus.FAILED]
