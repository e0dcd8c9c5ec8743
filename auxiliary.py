#!/usr/bin/env python3
"""
Auxiliary utility functions for Skoria

Size formatting/parsing, path display and artifact size measurement used by
the report and deletion phases. Nothing here is used by the traversal itself.
"""

import math
import os
import pathlib
from typing import Optional

_SIZE_UNITS = {"B": 1, "K": 1024, "M": 1024**2, "G": 1024**3, "T": 1024**4}


def format_bytes(size_bytes: int) -> str:
    """Format byte size into human-readable string

    Args:
        size_bytes: Size in bytes to format

    Returns:
        Formatted string like "1.2 GiB", "345.0 MiB", "12.0 KiB", or "789 B"
    """
    if size_bytes >= 1024**4:
        return f"{size_bytes / (1024**4):.1f} TiB"
    if size_bytes >= 1024**3:
        return f"{size_bytes / (1024**3):.1f} GiB"
    if size_bytes >= 1024**2:
        return f"{size_bytes / (1024**2):.1f} MiB"
    if size_bytes >= 1024:
        return f"{size_bytes / 1024:.1f} KiB"
    return f"{size_bytes} B"


def parse_size(value: str) -> int:
    """Parse a human-readable size like '10M', '1.5G' or '512' into bytes

    Raises:
        ValueError: If the value is not a size
    """
    text = value.strip().upper().removesuffix("IB").removesuffix("B") or "0"
    multiplier = 1
    if text[-1] in _SIZE_UNITS:
        multiplier = _SIZE_UNITS[text[-1]]
        text = text[:-1]
    number = float(text) * multiplier
    if not math.isfinite(number):
        raise ValueError(f"Not a finite size: {value}")
    if number < 0:
        raise ValueError(f"Negative size: {value}")
    return int(number)


def format_path_for_display(path: str, home_path: Optional[str] = None) -> str:
    """Format a path for display by replacing a leading home directory with ~

    Args:
        path: Path to format
        home_path: Home directory path (defaults to platform home)
    """
    if home_path is None:
        home_path = str(pathlib.Path.home())
    if path == home_path:
        return "~"
    if path.startswith(home_path.rstrip(os.sep) + os.sep):
        return "~" + path[len(home_path.rstrip(os.sep)) :]
    return path


def directory_size(path: str) -> tuple[int, int]:
    """Return (total_bytes, file_count) for a directory tree, without following links"""
    total = 0
    count = 0
    if os.path.islink(path):
        return 0, 0
    for dirpath, _dirnames, filenames in os.walk(path, followlinks=False):
        for name in filenames:
            try:
                total += os.lstat(os.path.join(dirpath, name)).st_size
            except OSError:
                continue
            count += 1
    return total, count
