#!/usr/bin/env python3
"""
Directory Cache Module for Skoria

Memoizes a single listing of each directory so that concurrent traversal
branches and detectors never read the same directory twice during a run.
Listing failures are cached as well and handed back to every caller.
"""

import os
import threading
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class Entry:
    """One directory entry as seen by the traversal"""

    name: str
    is_dir: bool
    is_symlink: bool


@dataclass(frozen=True)
class Listing:
    """Result of reading one directory: its entries or the error that occurred"""

    path: str
    entries: tuple[Entry, ...] = ()
    error: Optional[OSError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


Reader = Callable[[str], tuple[Entry, ...]]


def list_directory(path: str) -> tuple[Entry, ...]:
    """List a directory without following symlinks for the type checks

    Args:
        path: Directory to list

    Returns:
        Entries sorted by name

    Raises:
        OSError: If the directory cannot be listed
    """
    entries = []
    with os.scandir(path) as it:
        for dir_entry in it:
            try:
                is_symlink = dir_entry.is_symlink()
            except OSError:
                # Unknown link status is treated as a link so it is never followed
                is_symlink = True
            try:
                is_dir = dir_entry.is_dir(follow_symlinks=False)
            except OSError:
                is_dir = False
            entries.append(Entry(dir_entry.name, is_dir, is_symlink))
    entries.sort(key=lambda e: e.name)
    return tuple(entries)


class _Slot:
    __slots__ = ("ready", "listing")

    def __init__(self):
        self.ready = threading.Event()
        self.listing: Optional[Listing] = None


class DirectoryCache:
    """Thread-safe, read-once cache of directory listings"""

    def __init__(self, reader: Optional[Reader] = None):
        """Initialize the cache

        Args:
            reader: Callable performing the actual listing (defaults to list_directory)
        """
        self._reader = reader or list_directory
        self._lock = threading.Lock()
        self._slots: dict[str, _Slot] = {}

    def read(self, path: str) -> Listing:
        """Return the listing for *path*, reading the directory on first request only

        Concurrent callers asking for a path that is being read wait for that
        single read instead of issuing their own.
        """
        with self._lock:
            slot = self._slots.get(path)
            owner = slot is None
            if owner:
                slot = _Slot()
                self._slots[path] = slot

        if not owner:
            slot.ready.wait()
            return slot.listing

        try:
            slot.listing = self._load(path)
        finally:
            if slot.listing is None:
                slot.listing = Listing(path, error=OSError(f"listing {path} failed"))
            slot.ready.set()
        return slot.listing

    def _load(self, path: str) -> Listing:
        try:
            return Listing(path, entries=tuple(self._reader(path)))
        except OSError as e:
            return Listing(path, error=e)

    def is_non_empty_dir(self, path: str) -> bool:
        """True if *path* lists successfully and holds at least one entry"""
        listing = self.read(path)
        return listing.ok and len(listing.entries) > 0

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._slots

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)
