#!/usr/bin/env python3
"""
Traversal Engine for Skoria

Walks a directory tree depth-first, running every registered detector at each
directory and streaming matches to a single consumer. Child directories are
fanned out to worker threads while pool slots are free; when the pool is
exhausted the child is walked inline on the current thread instead of waiting,
so parents never block on children that cannot get a slot.

Typical use:
    traversal = start_traversal("~/src")
    for artifact in traversal:
        print(artifact.path, artifact.artifact_type)
"""

import logging
import os
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterator, Optional

from detectors import DetectorRegistry, DirectoryView, default_registry
from dir_cache import DirectoryCache

logger = logging.getLogger(__name__)

MAX_RECURSION_DEPTH = 1000
CONCURRENCY_LIMIT = 50
RESULT_BUFFER_SIZE = 100

# Known artifact/tooling directories that are never project roots
DEFAULT_SKIP_DIRS = frozenset(
    {
        "target",
        "node_modules",
        "CMakeFiles",
        "build",
        "bin",
        "obj",
        "dist",
        ".gradle",
        ".idea",
        ".vscode",
        ".dub",
        ".build",
    }
)


@dataclass(frozen=True)
class FoundArtifact:
    """A deletable artifact directory reported by one detector"""

    path: str
    artifact_type: str


@dataclass(frozen=True)
class TraversalConfig:
    """Fixed settings of one traversal"""

    max_depth: int = MAX_RECURSION_DEPTH
    concurrency: int = CONCURRENCY_LIMIT
    skip_dirs: frozenset = DEFAULT_SKIP_DIRS
    registry: DetectorRegistry = field(default_factory=default_registry)
    buffer_size: int = RESULT_BUFFER_SIZE

    def __post_init__(self):
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.concurrency < 0:
            raise ValueError(f"concurrency must be >= 0, got {self.concurrency}")
        if self.buffer_size < 1:
            raise ValueError(f"buffer_size must be >= 1, got {self.buffer_size}")
        object.__setattr__(self, "skip_dirs", frozenset(self.skip_dirs))


class ProgressCounter:
    """Monotonic count of directories whose work has been scheduled"""

    def __init__(self):
        self._lock = threading.Lock()
        self._value = 0

    def increment(self):
        with self._lock:
            self._value += 1

    @property
    def value(self) -> int:
        return self._value


class SlotPool:
    """Bounded pool of concurrency slots with non-blocking acquisition only"""

    def __init__(self, size: int):
        if size < 0:
            raise ValueError(f"pool size must be >= 0, got {size}")
        self.size = size
        self._lock = threading.Lock()
        self._active = 0
        self._peak = 0

    def try_acquire(self) -> bool:
        """Take a slot if one is free; never waits"""
        with self._lock:
            if self._active >= self.size:
                return False
            self._active += 1
            self._peak = max(self._peak, self._active)
            return True

    def release(self):
        with self._lock:
            if self._active == 0:
                raise RuntimeError("release() without matching try_acquire()")
            self._active -= 1

    @property
    def active(self) -> int:
        return self._active

    @property
    def peak(self) -> int:
        """Highest number of slots held at the same time so far"""
        return self._peak


class PendingWork:
    """Counts scheduled visits that have not finished yet (a wait group)"""

    def __init__(self):
        self._cond = threading.Condition()
        self._count = 0

    def add(self):
        with self._cond:
            self._count += 1

    def done(self):
        with self._cond:
            self._count -= 1
            if self._count <= 0:
                self._cond.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._count <= 0, timeout=timeout)


@dataclass
class TraversalContext:
    """Shared state of one traversal, handed to every recursive visit"""

    config: TraversalConfig
    cache: DirectoryCache
    progress: ProgressCounter
    pool: SlotPool
    pending: PendingWork
    results: "queue.Queue"
    failures: list = field(default_factory=list)
    failures_lock: threading.Lock = field(default_factory=threading.Lock)


class Walker:
    """Recursive, concurrency-bounded directory walker"""

    def __init__(self, context: TraversalContext, executor: Optional[ThreadPoolExecutor] = None):
        self.context = context
        self.config = context.config
        self._executor = executor

    def visit(self, path: str, depth: int):
        """Walk *path*; an unexpected error is logged and recorded, never raised"""
        try:
            self.walk(path, depth)
        except Exception as e:
            logger.exception("Unexpected error while visiting %s", path)
            with self.context.failures_lock:
                self.context.failures.append((path, e))

    def walk(self, path: str, depth: int):
        if depth >= self.config.max_depth:
            return

        listing = self.context.cache.read(path)
        if not listing.ok:
            logger.debug("Skipping unreadable directory %s: %s", path, listing.error)
            return

        view = DirectoryView.from_listing(listing, self.context.cache)
        for detector in self.config.registry:
            target = detector.evaluate(view)
            if target is not None:
                self.context.results.put(FoundArtifact(target, detector.name))

        for entry in listing.entries:
            if not entry.is_dir:
                continue
            if entry.name in self.config.skip_dirs:
                continue
            if entry.is_symlink:
                continue
            self._schedule(os.path.join(path, entry.name), depth + 1)

        self.context.progress.increment()

    def _schedule(self, path: str, depth: int):
        self.context.pending.add()
        if self._executor is not None and self.context.pool.try_acquire():
            try:
                self._executor.submit(self._run_spawned, path, depth)
                return
            except RuntimeError as e:
                # Executor refuses new work (shut down); walk it here instead
                logger.debug("Could not spawn visit of %s: %s", path, e)
                self.context.pool.release()
        try:
            self.visit(path, depth)
        finally:
            self.context.pending.done()

    def _run_spawned(self, path: str, depth: int):
        try:
            self.visit(path, depth)
        finally:
            self.context.pool.release()
            self.context.pending.done()


_DONE = object()


class Traversal:
    """A running traversal: iterate it to drain FoundArtifact records until completion"""

    def __init__(self, root: str, config: Optional[TraversalConfig] = None, cache: Optional[DirectoryCache] = None):
        self.root = os.path.abspath(os.path.expanduser(root))
        self.config = config if config is not None else TraversalConfig()
        self.context = TraversalContext(
            config=self.config,
            cache=cache if cache is not None else DirectoryCache(),
            progress=ProgressCounter(),
            pool=SlotPool(self.config.concurrency),
            pending=PendingWork(),
            results=queue.Queue(maxsize=self.config.buffer_size),
        )
        self._finished = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> "Traversal":
        if self._thread is not None:
            raise RuntimeError("Traversal already started")
        self._thread = threading.Thread(target=self._produce, name="SkoriaTraversal", daemon=True)
        self._thread.start()
        return self

    def _produce(self):
        executor = None
        if self.config.concurrency > 0:
            executor = ThreadPoolExecutor(max_workers=self.config.concurrency, thread_name_prefix="SkoriaWalker")
        try:
            walker = Walker(self.context, executor)
            walker.visit(self.root, 0)
            self.context.pending.wait()
        finally:
            if executor is not None:
                executor.shutdown(wait=True)
            self._finished.set()
            self.context.results.put(_DONE)
        logger.debug("Traversal of %s finished after %d directories", self.root, self.progress)

    def __iter__(self) -> Iterator[FoundArtifact]:
        while True:
            item = self.context.results.get()
            if item is _DONE:
                return
            yield item

    @property
    def progress(self) -> int:
        return self.context.progress.value

    @property
    def done(self) -> bool:
        return self._finished.is_set()

    @property
    def failures(self) -> list:
        with self.context.failures_lock:
            return list(self.context.failures)

    @property
    def pool(self) -> SlotPool:
        return self.context.pool

    @property
    def cache(self) -> DirectoryCache:
        return self.context.cache

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until all traversal work has finished (results may still be buffered)"""
        return self._finished.wait(timeout)


def start_traversal(
    root: str, config: Optional[TraversalConfig] = None, cache: Optional[DirectoryCache] = None
) -> Traversal:
    """Start walking *root* in the background and return the running traversal"""
    return Traversal(root, config, cache).start()


def collect(root: str, config: Optional[TraversalConfig] = None) -> list[FoundArtifact]:
    """Run a traversal to completion and return everything it found"""
    return list(start_traversal(root, config))
