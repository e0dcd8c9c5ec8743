"""
Shared pytest fixtures for the skoria test suite.

Makes the flat top-level modules importable without installation and provides
helpers to build small directory trees and to observe directory reads.
"""

import os
import sys
import threading
import time
from typing import Optional

import pytest

_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _ROOT not in sys.path:
    sys.path.insert(0, _ROOT)

from dir_cache import list_directory  # noqa: E402


def build_tree(base, layout: dict):
    """Create files and directories under *base* from a nested dict

    A dict value is a subdirectory, a str value is file content.
    """
    base.mkdir(parents=True, exist_ok=True)
    for name, value in layout.items():
        target = base / name
        if isinstance(value, dict):
            build_tree(target, value)
        else:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(value)
    return base


class CountingReader:
    """Directory reader that records every call, optionally slowing each one down"""

    def __init__(self, delay: float = 0.0, fail: Optional[dict] = None):
        self.delay = delay
        self.fail = fail or {}
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def __call__(self, path: str):
        with self._lock:
            self.calls.append(path)
        if self.delay:
            time.sleep(self.delay)
        if path in self.fail:
            raise self.fail[path]
        return list_directory(path)

    def count(self, path: str) -> int:
        with self._lock:
            return self.calls.count(path)


@pytest.fixture
def make_tree(tmp_path):
    def _make(layout: dict, root_name: str = "root"):
        return build_tree(tmp_path / root_name, layout)

    return _make


@pytest.fixture
def counting_reader():
    return CountingReader()
